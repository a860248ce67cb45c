from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medibook.core.errors import TenantUnavailableError
from medibook.tenancy.connections import TenantConnectionRouter
from medibook.tenancy.context import TenantContext

class TenantSessionProvider:
    """Hands out sessions bound to the active tenant, or to the central DB when none is active."""

    def __init__(self, router: TenantConnectionRouter, context: TenantContext,
                 central: async_sessionmaker[AsyncSession]):
        self.router = router
        self.context = context
        self.central = central

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        database_name = self.context.get()
        if database_name:
            conn = await self.router.resolve(database_name)
            session = conn.session()
        else:
            session = self.central()
        async with session:
            yield session

    @asynccontextmanager
    async def tenant_session(self, database_name: str | None = None) -> AsyncIterator[AsyncSession]:
        """Session on a tenant database; fails instead of falling back to central."""
        database_name = database_name or self.context.get()
        if not database_name:
            raise TenantUnavailableError("Clinic context not set; this operation requires a clinic tenant")
        conn = await self.router.resolve(database_name)
        async with conn.session() as session:
            yield session
