from typing import Sequence
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.modules.schedule.models import (
    ClinicWorkingHour, ClinicBreakHour, WorkingHour, BreakHour, DoctorWorkingHour
)
from medibook.modules.doctors.models import Service

_ANY = object()  # "do not filter on branch"

def _branch(col, branch_id):
    return col.is_(None) if branch_id is None else col == branch_id

class ClinicHoursRepository:
    """Central clinic-wide working/break hours."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_working(self, clinic_id: int, day: str | None = None, branch_id=_ANY) -> Sequence[ClinicWorkingHour]:
        cond = [ClinicWorkingHour.clinic_id == clinic_id]
        if day:
            cond.append(ClinicWorkingHour.day == day)
        if branch_id is not _ANY:
            cond.append(_branch(ClinicWorkingHour.branch_id, branch_id))
        q = select(ClinicWorkingHour).where(*cond).order_by(ClinicWorkingHour.day, ClinicWorkingHour.range_order)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_breaks(self, clinic_id: int, day: str | None = None, branch_id=_ANY) -> Sequence[ClinicBreakHour]:
        cond = [ClinicBreakHour.clinic_id == clinic_id]
        if day:
            cond.append(ClinicBreakHour.day == day)
        if branch_id is not _ANY:
            cond.append(_branch(ClinicBreakHour.branch_id, branch_id))
        q = select(ClinicBreakHour).where(*cond).order_by(ClinicBreakHour.day, ClinicBreakHour.break_order)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def replace_working(self, clinic_id: int, days: list[str], branch_id: int | None, ranges_by_day: dict[str, list[dict]]) -> list[ClinicWorkingHour]:
        await self.session.execute(delete(ClinicWorkingHour).where(
            ClinicWorkingHour.clinic_id == clinic_id,
            ClinicWorkingHour.day.in_(days),
            _branch(ClinicWorkingHour.branch_id, branch_id),
        ))
        rows = [
            ClinicWorkingHour(clinic_id=clinic_id, day=day, branch_id=branch_id, range_order=i, is_active=True, **r)
            for day in days for i, r in enumerate(ranges_by_day.get(day, []))
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def replace_breaks(self, clinic_id: int, days: list[str], branch_id: int | None, ranges_by_day: dict[str, list[dict]]) -> list[ClinicBreakHour]:
        await self.session.execute(delete(ClinicBreakHour).where(
            ClinicBreakHour.clinic_id == clinic_id,
            ClinicBreakHour.day.in_(days),
            _branch(ClinicBreakHour.branch_id, branch_id),
        ))
        rows = [
            ClinicBreakHour(clinic_id=clinic_id, day=day, branch_id=branch_id, break_order=i, is_active=True, **r)
            for day in days for i, r in enumerate(ranges_by_day.get(day, []))
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def search_working(self, clinic_id: int | None = None, day: str | None = None) -> Sequence[ClinicWorkingHour]:
        cond = [ClinicWorkingHour.is_active.is_(True)]
        if clinic_id:
            cond.append(ClinicWorkingHour.clinic_id == clinic_id)
        if day:
            cond.append(ClinicWorkingHour.day == day)
        q = select(ClinicWorkingHour).where(*cond).order_by(
            ClinicWorkingHour.clinic_id, ClinicWorkingHour.day, ClinicWorkingHour.range_order
        )
        res = await self.session.execute(q)
        return res.scalars().all()

class TenantHoursRepository:
    """The clinic's own copy of its working/break hours, inside the tenant database."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_working(self, day: str | None = None, branch_id=_ANY) -> Sequence[WorkingHour]:
        q = select(WorkingHour).where(WorkingHour.is_active.is_(True))
        if day:
            q = q.where(WorkingHour.day == day)
        if branch_id is not _ANY:
            q = q.where(_branch(WorkingHour.branch_id, branch_id))
        res = await self.session.execute(q.order_by(WorkingHour.day, WorkingHour.range_order))
        return res.scalars().all()

    async def list_breaks(self, day: str | None = None, branch_id=_ANY) -> Sequence[BreakHour]:
        q = select(BreakHour).where(BreakHour.is_active.is_(True))
        if day:
            q = q.where(BreakHour.day == day)
        if branch_id is not _ANY:
            q = q.where(_branch(BreakHour.branch_id, branch_id))
        res = await self.session.execute(q.order_by(BreakHour.day, BreakHour.break_order))
        return res.scalars().all()

    async def replace_working(self, days: list[str], branch_id: int | None, ranges_by_day: dict[str, list[dict]]) -> None:
        await self.session.execute(delete(WorkingHour).where(WorkingHour.day.in_(days), _branch(WorkingHour.branch_id, branch_id)))
        self.session.add_all([
            WorkingHour(day=day, branch_id=branch_id, range_order=i, is_active=True, **r)
            for day in days for i, r in enumerate(ranges_by_day.get(day, []))
        ])
        await self.session.flush()

    async def replace_breaks(self, days: list[str], branch_id: int | None, ranges_by_day: dict[str, list[dict]]) -> None:
        await self.session.execute(delete(BreakHour).where(BreakHour.day.in_(days), _branch(BreakHour.branch_id, branch_id)))
        self.session.add_all([
            BreakHour(day=day, branch_id=branch_id, break_order=i, is_active=True, **r)
            for day in days for i, r in enumerate(ranges_by_day.get(day, []))
        ])
        await self.session.flush()

class DoctorHoursRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, working_hour_id: int) -> DoctorWorkingHour | None:
        return await self.session.get(DoctorWorkingHour, working_hour_id)

    async def load_services(self, service_ids: list[int]) -> Sequence[Service]:
        if not service_ids:
            return []
        res = await self.session.execute(select(Service).where(Service.id.in_(service_ids)))
        return res.scalars().all()

    async def list(self, doctor_id: int, *, day: str | None = None, branch_id=_ANY, active_only: bool = False) -> Sequence[DoctorWorkingHour]:
        cond = [DoctorWorkingHour.doctor_id == doctor_id]
        if day:
            cond.append(DoctorWorkingHour.day == day)
        if branch_id is not _ANY:
            cond.append(_branch(DoctorWorkingHour.branch_id, branch_id))
        if active_only:
            cond.append(DoctorWorkingHour.is_active.is_(True))
        q = select(DoctorWorkingHour).where(*cond).order_by(DoctorWorkingHour.day, DoctorWorkingHour.start_time)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def create(self, services: Sequence[Service] = (), **data) -> DoctorWorkingHour:
        obj = DoctorWorkingHour(**data)
        obj.services = list(services)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def delete(self, obj: DoctorWorkingHour) -> None:
        await self.session.delete(obj)
        await self.session.flush()
