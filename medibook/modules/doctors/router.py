from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.core.security import require_scopes
from medibook.modules.doctors.schemas import DoctorCreate, DoctorOut, ServiceCreate, ServiceOut
from medibook.modules.doctors.service import DoctorService
from medibook.tenancy.deps import clinic_access, get_tenant_session

router = APIRouter(prefix="/clinics/{clinic_id}", dependencies=[Depends(clinic_access)])

def svc(s: AsyncSession = Depends(get_tenant_session)) -> DoctorService:
    return DoctorService(s)

@router.post("/doctors", response_model=DoctorOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_scopes("doctors:write"))])
async def create_doctor(payload: DoctorCreate, service: DoctorService = Depends(svc)):
    return await service.create_doctor(payload)

@router.get("/doctors", response_model=list[DoctorOut], dependencies=[Depends(require_scopes("doctors:read"))])
async def list_doctors(specialty: str | None = None, active: bool | None = None, service: DoctorService = Depends(svc)):
    return await service.list_doctors(specialty, active)

@router.get("/doctors/{doctor_id}", response_model=DoctorOut, dependencies=[Depends(require_scopes("doctors:read"))])
async def get_doctor(doctor_id: int, service: DoctorService = Depends(svc)):
    return await service.get_doctor(doctor_id)

@router.post("/services", response_model=ServiceOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_scopes("doctors:write"))])
async def create_service(payload: ServiceCreate, service: DoctorService = Depends(svc)):
    return await service.create_service(payload)

@router.get("/services", response_model=list[ServiceOut], dependencies=[Depends(require_scopes("doctors:read"))])
async def list_services(service: DoctorService = Depends(svc)):
    return await service.list_services()
