import logging
import os
import re

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from medibook.core.config import settings

log = logging.getLogger("tenancy.provisioning")

_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")

def sanitize_database_name(name: str) -> str:
    return _UNSAFE.sub("_", name).lower()

def database_name_for_clinic(clinic_id: int) -> str:
    return sanitize_database_name(f"{settings.TENANT_DATABASE_PREFIX}{clinic_id}")

# ---- Tenant migrations (alembic revisions under ./migrations) ----

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "migrations")

def _upgrade(connection: Connection, cfg: Config) -> None:
    cfg.attributes["connection"] = connection
    command.upgrade(cfg, "head")

def _current_revision(connection: Connection) -> str | None:
    return MigrationContext.configure(connection).get_current_revision()

class TenantProvisioner:
    """Creates tenant databases and brings their schema up to date.

    PostgreSQL tenants are created through an admin connection; SQLite
    tenants are plain files, which keeps local runs and tests self-contained.
    """

    def __init__(self, dsn_template: str | None = None, admin_dsn: str | None = None,
                 script_location: str | None = None):
        self.dsn_template = dsn_template or settings.TENANT_DSN_TEMPLATE
        self.admin_dsn = admin_dsn or settings.TENANT_ADMIN_DSN
        self.script_location = script_location or MIGRATIONS_DIR

    def url_for(self, database_name: str) -> str:
        return self.dsn_template.format(database=sanitize_database_name(database_name))

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.dsn_template.format(database="x")).get_backend_name() == "sqlite"

    def _sqlite_path(self, database_name: str) -> str:
        return make_url(self.url_for(database_name)).database or ""

    def create_engine(self, database_name: str) -> AsyncEngine:
        if self.is_sqlite:
            return create_async_engine(self.url_for(database_name))
        return create_async_engine(self.url_for(database_name), pool_pre_ping=True, pool_size=settings.TENANT_POOL_SIZE)

    async def database_exists(self, database_name: str) -> bool:
        name = sanitize_database_name(database_name)
        if self.is_sqlite:
            return os.path.exists(self._sqlite_path(name))
        admin = create_async_engine(self.admin_dsn)
        try:
            async with admin.connect() as conn:
                res = await conn.execute(text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": name})
                return res.scalar_one_or_none() is not None
        finally:
            await admin.dispose()

    async def create_database(self, database_name: str) -> None:
        name = sanitize_database_name(database_name)
        if self.is_sqlite:
            path = self._sqlite_path(name)
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
            if not os.path.exists(path):
                open(path, "a").close()
            log.info("Tenant database %s created (sqlite file)", name)
            return
        if await self.database_exists(name):
            log.info("Tenant database %s already exists", name)
            return
        admin = create_async_engine(self.admin_dsn, isolation_level="AUTOCOMMIT")
        try:
            async with admin.connect() as conn:
                await conn.exec_driver_sql(f'CREATE DATABASE "{name}"')
        finally:
            await admin.dispose()
        log.info("Tenant database %s created", name)

    def alembic_config(self, url: str | None = None) -> Config:
        cfg = Config()
        cfg.set_main_option("script_location", self.script_location)
        if url:
            # configparser interpolation: escape '%' in url-encoded passwords
            cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
        return cfg

    async def current_revision(self, engine: AsyncEngine) -> str | None:
        async with engine.connect() as conn:
            return await conn.run_sync(_current_revision)

    async def pending_migrations(self, engine: AsyncEngine) -> list[str]:
        """Revision ids between the database's current revision and head, oldest first."""
        current = await self.current_revision(engine)
        pending: list[str] = []
        for rev in ScriptDirectory.from_config(self.alembic_config()).walk_revisions():
            if rev.revision == current:
                break
            pending.append(rev.revision)
        return pending[::-1]

    async def run_migrations(self, engine: AsyncEngine) -> list[str]:
        pending = await self.pending_migrations(engine)
        if not pending:
            log.debug("Tenant database %s is at head", engine.url.database)
            return []
        log.info("Upgrading tenant database %s through %s", engine.url.database, ", ".join(pending))
        cfg = self.alembic_config(engine.url.render_as_string(hide_password=False))
        async with engine.begin() as conn:
            await conn.run_sync(_upgrade, cfg)
        return pending
