from datetime import date
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.core.db import get_session
from medibook.core.security import require_scopes
from medibook.modules.schedule.repository import _ANY
from medibook.modules.schedule.schemas import (
    WorkingHoursSet, BreakHoursSet, WorkingHourOut, BreakHourOut, ClinicWorkingHourOut, DaySchedule, AvailableDay,
    DoctorWorkingHourCreate, DoctorWorkingHourBulk, DoctorWorkingHourBulkResult, DoctorWorkingHourUpdate,
    DoctorWorkingHourOut, SlotOut,
)
from medibook.modules.schedule.service import ClinicHoursService, DoctorHoursService
from medibook.modules.schedule.timeranges import DayOfWeek
from medibook.tenancy.deps import clinic_access, get_tenant_session

router = APIRouter(dependencies=[Depends(clinic_access)])
search_router = APIRouter()

def clinic_svc(s: AsyncSession = Depends(get_session)) -> ClinicHoursService:
    return ClinicHoursService(s)

def doctor_svc(s: AsyncSession = Depends(get_tenant_session)) -> DoctorHoursService:
    return DoctorHoursService(s)

# Clinic-wide defaults
@router.put("/clinics/{clinic_id}/working-hours", response_model=list[WorkingHourOut], dependencies=[Depends(require_scopes("schedule:write"))])
async def set_working_hours(clinic_id: int, payload: WorkingHoursSet, service: ClinicHoursService = Depends(clinic_svc)):
    return await service.set_working_hours(clinic_id, payload)

@router.get("/clinics/{clinic_id}/working-hours", response_model=list[WorkingHourOut], dependencies=[Depends(require_scopes("schedule:read"))])
async def get_working_hours(clinic_id: int, day: DayOfWeek | None = None, service: ClinicHoursService = Depends(clinic_svc)):
    return await service.get_working_hours(clinic_id, day)

@router.put("/clinics/{clinic_id}/break-hours", response_model=list[BreakHourOut], dependencies=[Depends(require_scopes("schedule:write"))])
async def set_break_hours(clinic_id: int, payload: BreakHoursSet, service: ClinicHoursService = Depends(clinic_svc)):
    return await service.set_break_hours(clinic_id, payload)

@router.get("/clinics/{clinic_id}/break-hours", response_model=list[BreakHourOut], dependencies=[Depends(require_scopes("schedule:read"))])
async def get_break_hours(clinic_id: int, day: DayOfWeek | None = None, service: ClinicHoursService = Depends(clinic_svc)):
    return await service.get_break_hours(clinic_id, day)

@router.get("/clinics/{clinic_id}/schedule", response_model=list[DaySchedule], dependencies=[Depends(require_scopes("schedule:read"))])
async def weekly_schedule(clinic_id: int, branch_id: int | None = None, service: ClinicHoursService = Depends(clinic_svc)):
    return await service.weekly_schedule(clinic_id, branch_id if branch_id is not None else _ANY)

@router.delete("/clinics/{clinic_id}/schedule/{day}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_scopes("schedule:write"))])
async def delete_day(clinic_id: int, day: DayOfWeek, branch_id: int | None = None, service: ClinicHoursService = Depends(clinic_svc)):
    await service.delete_day(clinic_id, day, branch_id)

# Doctor hours (tenant database)
@router.post("/clinics/{clinic_id}/doctors/{doctor_id}/working-hours", response_model=list[DoctorWorkingHourOut],
             status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_scopes("schedule:write"))])
async def set_doctor_working_hours(doctor_id: int, payload: DoctorWorkingHourCreate, service: DoctorHoursService = Depends(doctor_svc)):
    return await service.set_working_hours(doctor_id, payload)

@router.post("/clinics/{clinic_id}/doctors/{doctor_id}/working-hours/bulk", response_model=DoctorWorkingHourBulkResult,
             status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_scopes("schedule:write"))])
async def bulk_set_doctor_working_hours(doctor_id: int, payload: DoctorWorkingHourBulk, service: DoctorHoursService = Depends(doctor_svc)):
    return await service.bulk_set(doctor_id, payload.working_hours)

@router.get("/clinics/{clinic_id}/doctors/{doctor_id}/working-hours", response_model=list[DoctorWorkingHourOut], dependencies=[Depends(require_scopes("schedule:read"))])
async def list_doctor_working_hours(doctor_id: int, day: DayOfWeek | None = None, service: DoctorHoursService = Depends(doctor_svc)):
    return await service.list(doctor_id, day)

@router.patch("/clinics/{clinic_id}/doctors/{doctor_id}/working-hours/{working_hour_id}", response_model=DoctorWorkingHourOut,
              dependencies=[Depends(require_scopes("schedule:write"))])
async def update_doctor_working_hour(doctor_id: int, working_hour_id: int, payload: DoctorWorkingHourUpdate,
                                     service: DoctorHoursService = Depends(doctor_svc)):
    return await service.update(doctor_id, working_hour_id, payload)

@router.delete("/clinics/{clinic_id}/doctors/{doctor_id}/working-hours/{working_hour_id}", status_code=status.HTTP_204_NO_CONTENT,
               dependencies=[Depends(require_scopes("schedule:write"))])
async def delete_doctor_working_hour(doctor_id: int, working_hour_id: int, service: DoctorHoursService = Depends(doctor_svc)):
    await service.delete(doctor_id, working_hour_id)

@router.get("/clinics/{clinic_id}/doctors/{doctor_id}/slots", response_model=list[SlotOut], dependencies=[Depends(require_scopes("schedule:read"))])
async def available_slots(doctor_id: int, on: date, service: DoctorHoursService = Depends(doctor_svc)):
    return await service.available_slots(doctor_id, on)

@router.get("/clinics/{clinic_id}/doctors/{doctor_id}/default-schedule", response_model=list[AvailableDay], dependencies=[Depends(require_scopes("schedule:read"))])
async def default_schedule_for_doctor(doctor_id: int, day: DayOfWeek | None = None, branch_id: int | None = None, service: DoctorHoursService = Depends(doctor_svc)):
    return await service.default_schedule(doctor_id, day, branch_id if branch_id is not None else _ANY)

# Public search across clinics
@search_router.get("/working-hours", response_model=list[ClinicWorkingHourOut])
async def search_working_hours(clinic_id: int | None = None, day: DayOfWeek | None = None, start_time: str | None = None,
                               end_time: str | None = None, service: ClinicHoursService = Depends(clinic_svc)):
    return await service.search_working_hours(clinic_id, day, start_time, end_time)
