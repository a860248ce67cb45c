import logging
import re
from fastapi import FastAPI, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medibook.core.config import settings
from medibook.core.db import SessionLocal
from medibook.core.errors import DomainError, NotFoundError, TenantUnavailableError, error_response
from medibook.core.security import peek_clinic_id
from medibook.modules.directory.models import Clinic
from medibook.tenancy.connections import TenantConnectionRouter, connection_router
from medibook.tenancy.context import TenantContext, tenant_context

logger = logging.getLogger(__name__)

CLINIC_PATH = re.compile(rf"^{re.escape(settings.API_PREFIX)}/clinics/(\d+)(?:/|$)")

def tenant_hint(request: Request) -> int | None:
    """Clinic id this request is addressed to: the credential's marker first, then the route."""
    clinic_id = peek_clinic_id(request.headers.get("authorization"))
    if clinic_id is not None:
        return clinic_id
    m = CLINIC_PATH.match(request.url.path)
    return int(m.group(1)) if m else None

async def resolve_tenant(clinic_id: int, central: async_sessionmaker[AsyncSession],
                         router: TenantConnectionRouter) -> str:
    async with central() as session:
        clinic = await session.get(Clinic, clinic_id)
    if not clinic:
        raise NotFoundError(f"Clinic with ID {clinic_id} not found")
    if not clinic.is_active:
        raise TenantUnavailableError(f"Clinic {clinic_id} is not active")
    if not clinic.database_name:
        raise TenantUnavailableError(f"Clinic {clinic_id} has no provisioned database")
    await router.resolve(clinic.database_name)
    return clinic.database_name

def install_tenant_middleware(app: FastAPI, central: async_sessionmaker[AsyncSession] = SessionLocal,
                              router: TenantConnectionRouter = connection_router,
                              context: TenantContext = tenant_context) -> None:
    """Resolve the tenant before any route dependency (auth included) runs, and always clear it afterwards."""

    @app.middleware("http")
    async def tenant_middleware(request: Request, call_next):
        try:
            clinic_id = tenant_hint(request)
            if clinic_id is not None:
                try:
                    context.set(await resolve_tenant(clinic_id, central, router))
                except DomainError as e:
                    logger.info(f"Tenant resolution failed for {request.method} {request.url.path}: {e.message}")
                    return error_response(e)
            return await call_next(request)
        finally:
            context.clear()
