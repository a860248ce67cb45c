from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.core.db import get_session
from medibook.core.paging import PageParams
from medibook.core.security import Principal, get_principal, require_scopes
from medibook.modules.directory.schemas import (
    ClinicRegister, ClinicActivation, ClinicOut, ClinicPage, DirectoryRecord, DoctorDirectoryOut
)
from medibook.modules.directory.service import ClinicService
from medibook.modules.doctors.service import DoctorSearchService
from medibook.tenancy.deps import get_any_session

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> ClinicService:
    return ClinicService(session)

@router.post("/clinics", response_model=ClinicOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_scopes("clinics:write"))])
async def register_clinic(payload: ClinicRegister, service: ClinicService = Depends(svc)):
    return await service.register(payload)

@router.get("/clinics", response_model=ClinicPage, dependencies=[Depends(require_scopes("clinics:read"))])
async def list_clinics(page: int = 1, limit: int = 10, active: bool | None = None, service: ClinicService = Depends(svc)):
    return await service.list(PageParams(page=page, limit=limit), active)

@router.get("/clinics/{clinic_id}", response_model=ClinicOut, dependencies=[Depends(require_scopes("clinics:read"))])
async def get_clinic(clinic_id: int, service: ClinicService = Depends(svc)):
    return await service.get(clinic_id)

@router.get("/clinics/{clinic_id}/record", response_model=DirectoryRecord, dependencies=[Depends(require_scopes("clinics:read"))])
async def get_directory_record(clinic_id: int, service: ClinicService = Depends(svc)):
    return await service.directory_record(clinic_id)

@router.patch("/clinics/{clinic_id}/activation", response_model=ClinicOut, dependencies=[Depends(require_scopes("clinics:write"))])
async def set_clinic_activation(clinic_id: int, payload: ClinicActivation, service: ClinicService = Depends(svc)):
    return await service.set_active(clinic_id, payload.is_active)

@router.get("/doctors", response_model=list[DoctorDirectoryOut], dependencies=[Depends(require_scopes("clinics:read"))])
async def search_doctors(name: str | None = None, specialty: str | None = None, limit: int = 50,
                         session: AsyncSession = Depends(get_any_session),
                         principal: Principal = Depends(get_principal)):
    # clinic-bound credentials search their own clinic, others the whole directory
    return await DoctorSearchService(session).search(name, specialty, limit, clinic_id=principal.clinic_id)
