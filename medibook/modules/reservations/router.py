from datetime import date
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.core.paging import PageParams
from medibook.core.security import require_scopes
from medibook.modules.reservations.models import ReservationStatus
from medibook.modules.reservations.schemas import ReservationCreate, ReservationUpdate, ReservationOut, ReservationPage
from medibook.modules.reservations.service import ReservationService
from medibook.tenancy.deps import clinic_access, get_tenant_session

router = APIRouter(prefix="/clinics/{clinic_id}/reservations", dependencies=[Depends(clinic_access)])

def svc(s: AsyncSession = Depends(get_tenant_session)) -> ReservationService:
    return ReservationService(s)

@router.post("", response_model=ReservationOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_scopes("reservations:write"))])
async def create_reservation(payload: ReservationCreate, service: ReservationService = Depends(svc)):
    return await service.create_reservation(payload)

@router.get("", response_model=ReservationPage, dependencies=[Depends(require_scopes("reservations:read"))])
async def list_reservations(page: int = 1, limit: int = 10, doctor_id: int | None = None, status: ReservationStatus | None = None,
                            on: date | None = None, service: ReservationService = Depends(svc)):
    return await service.list(PageParams(page=page, limit=limit), doctor_id, status, on)

@router.get("/{reservation_id}", response_model=ReservationOut, dependencies=[Depends(require_scopes("reservations:read"))])
async def get_reservation(reservation_id: int, service: ReservationService = Depends(svc)):
    return await service.get(reservation_id)

@router.patch("/{reservation_id}", response_model=ReservationOut, dependencies=[Depends(require_scopes("reservations:write"))])
async def update_reservation(reservation_id: int, payload: ReservationUpdate, service: ReservationService = Depends(svc)):
    return await service.update_reservation(reservation_id, payload)

@router.post("/{reservation_id}/cancel", response_model=ReservationOut, dependencies=[Depends(require_scopes("reservations:write"))])
async def cancel_reservation(reservation_id: int, service: ReservationService = Depends(svc)):
    return await service.cancel(reservation_id)

@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_scopes("reservations:write"))])
async def delete_reservation(reservation_id: int, service: ReservationService = Depends(svc)):
    await service.delete(reservation_id)
