from functools import lru_cache
from fastapi import Depends, HTTPException, status

from medibook.core.db import SessionLocal
from medibook.core.security import Principal, get_principal
from medibook.tenancy.access import TenantSessionProvider
from medibook.tenancy.connections import connection_router
from medibook.tenancy.context import tenant_context

@lru_cache
def get_session_provider() -> TenantSessionProvider:
    return TenantSessionProvider(connection_router, tenant_context, SessionLocal)

async def get_tenant_session():
    async with get_session_provider().tenant_session() as session:
        yield session

async def get_any_session():
    async with get_session_provider().session() as session:
        yield session

def clinic_access(clinic_id: int, principal: Principal = Depends(get_principal)) -> Principal:
    """Callers bound to one clinic may only reach that clinic's routes."""
    if principal.clinic_id is not None and principal.clinic_id != clinic_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed for this clinic")
    return principal
