import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from medibook.core.errors import TenantUnavailableError
from medibook.tenancy.provisioning import TenantProvisioner, sanitize_database_name

log = logging.getLogger("tenancy.connections")

_CONNECT_ERRORS = (OperationalError, InterfaceError, DBAPIError, OSError, ConnectionError)

@dataclass
class TenantConnection:
    """A live, verified connection pool for one tenant database."""
    database_name: str
    engine: AsyncEngine
    sessionmaker: async_sessionmaker[AsyncSession] = field(init=False)
    closed: bool = False

    def __post_init__(self):
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

    def session(self) -> AsyncSession:
        if self.closed:
            raise TenantUnavailableError(f"Connection to tenant database {self.database_name!r} is closed")
        return self.sessionmaker()

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            await self.engine.dispose()

class TenantConnectionRouter:
    """Registry of live tenant connections with single-flight get-or-create.

    Concurrent first resolutions of the same name wait on one per-name lock,
    so exactly one engine is built per tenant. Closed entries are evicted and
    rebuilt on the next resolve. Entries are never expired.
    """

    def __init__(self, provisioner: TenantProvisioner | None = None):
        self.provisioner = provisioner or TenantProvisioner()
        self._connections: dict[str, TenantConnection] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, database_name: str) -> bool:
        conn = self._connections.get(sanitize_database_name(database_name))
        return conn is not None and not conn.closed

    def __len__(self) -> int:
        return len(self._connections)

    def _lock_for(self, name: str) -> asyncio.Lock:
        # setdefault without an await in between is atomic on the event loop
        return self._locks.setdefault(name, asyncio.Lock())

    def _cached(self, name: str) -> TenantConnection | None:
        conn = self._connections.get(name)
        if conn is None:
            return None
        if conn.closed:
            log.info("Evicting closed connection for tenant %s", name)
            del self._connections[name]
            return None
        return conn

    async def resolve(self, database_name: str | None) -> TenantConnection | None:
        if not database_name:
            return None
        name = sanitize_database_name(database_name)
        conn = self._cached(name)
        if conn is not None:
            return conn
        async with self._lock_for(name):
            conn = self._cached(name)
            if conn is not None:
                return conn
            conn = await self._open(name)
            self._connections[name] = conn
            log.info("Tenant connection initialized for %s", name)
            return conn

    async def _open(self, name: str) -> TenantConnection:
        try:
            exists = await self.provisioner.database_exists(name)
        except _CONNECT_ERRORS as e:
            log.error("Could not verify tenant database %s: %s", name, e)
            raise TenantUnavailableError(f"Tenant database {name!r} is unreachable") from e
        if not exists:
            log.error("Tenant database %s does not exist; provision it first", name)
            raise TenantUnavailableError(f"Tenant database {name!r} does not exist")

        engine = self.provisioner.create_engine(name)
        try:
            async with engine.connect() as c:
                await c.execute(text("SELECT 1"))
        except _CONNECT_ERRORS as e:
            await engine.dispose()
            log.error("Failed to connect to tenant database %s: %s", name, e)
            raise TenantUnavailableError(f"Failed to connect to tenant database {name!r}") from e
        return TenantConnection(database_name=name, engine=engine)

    async def provision(self, database_name: str) -> TenantConnection:
        """Create the tenant database, upgrade it to the head revision, then cache it."""
        name = sanitize_database_name(database_name)
        async with self._lock_for(name):
            try:
                await self.provisioner.create_database(name)
            except _CONNECT_ERRORS as e:
                log.exception("Creating tenant database %s failed", name)
                raise TenantUnavailableError(f"Failed to provision tenant database {name!r}") from e

            engine = self.provisioner.create_engine(name)
            try:
                await self.provisioner.run_migrations(engine)
            except _CONNECT_ERRORS as e:
                await engine.dispose()
                log.exception("Migrating tenant database %s failed", name)
                raise TenantUnavailableError(f"Failed to provision tenant database {name!r}") from e
            except Exception:
                await engine.dispose()
                raise
            stale = self._connections.get(name)
            if stale is not None:
                await stale.close()
            conn = TenantConnection(database_name=name, engine=engine)
            self._connections[name] = conn
            log.info("Tenant database %s provisioned", name)
            return conn

    async def evict(self, database_name: str) -> None:
        name = sanitize_database_name(database_name)
        conn = self._connections.pop(name, None)
        if conn is not None:
            await conn.close()

    async def dispose_all(self) -> None:
        for name, conn in list(self._connections.items()):
            await conn.close()
            log.info("Tenant connection disposed for %s", name)
        self._connections.clear()
        self._locks.clear()

connection_router = TenantConnectionRouter()

async def resolve_connection(database_name: str | None) -> TenantConnection | None:
    return await connection_router.resolve(database_name)
