from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.modules.directory.models import Clinic, DoctorDirectoryEntry, ReservationMirror

class ClinicRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Clinic:
        obj = Clinic(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, clinic_id: int) -> Clinic | None:
        return await self.session.get(Clinic, clinic_id)

    async def find_by_contact(self, *, email: str | None = None, phone: str | None = None) -> Clinic | None:
        cond = []
        if email:
            cond.append(Clinic.email == email)
        if phone:
            cond.append(Clinic.phone == phone)
        if not cond:
            return None
        res = await self.session.execute(select(Clinic).where(*cond))
        return res.scalars().first()

    async def list(self, *, limit: int = 10, offset: int = 0, active: bool | None = None) -> tuple[Sequence[Clinic], int]:
        q = select(Clinic)
        cq = select(func.count(Clinic.id))
        if active is not None:
            q = q.where(Clinic.is_active.is_(active))
            cq = cq.where(Clinic.is_active.is_(active))
        res = await self.session.execute(q.order_by(Clinic.id.asc()).limit(limit).offset(offset))
        total = (await self.session.execute(cq)).scalar_one()
        return res.scalars().all(), total

class DirectoryMirrorRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_doctor(self, clinic_id: int, clinic_doctor_id: int) -> DoctorDirectoryEntry | None:
        res = await self.session.execute(select(DoctorDirectoryEntry).where(
            DoctorDirectoryEntry.clinic_id == clinic_id,
            DoctorDirectoryEntry.clinic_doctor_id == clinic_doctor_id,
        ))
        return res.scalar_one_or_none()

    async def upsert_doctor(self, clinic_id: int, clinic_doctor_id: int, **data) -> DoctorDirectoryEntry:
        obj = await self.get_doctor(clinic_id, clinic_doctor_id)
        if obj is None:
            obj = DoctorDirectoryEntry(clinic_id=clinic_id, clinic_doctor_id=clinic_doctor_id, **data)
            self.session.add(obj)
        else:
            for k, v in data.items():
                setattr(obj, k, v)
        await self.session.flush()
        return obj

    async def search_doctors(self, *, name: str | None = None, specialty: str | None = None, limit: int = 50) -> Sequence[DoctorDirectoryEntry]:
        q = select(DoctorDirectoryEntry)
        if name:
            q = q.where(DoctorDirectoryEntry.name.ilike(f"%{name}%"))
        if specialty:
            q = q.where(DoctorDirectoryEntry.specialty == specialty)
        res = await self.session.execute(q.order_by(DoctorDirectoryEntry.name.asc()).limit(limit))
        return res.scalars().all()

    async def get_reservation(self, clinic_id: int, clinic_reservation_id: int) -> ReservationMirror | None:
        res = await self.session.execute(select(ReservationMirror).where(
            ReservationMirror.clinic_id == clinic_id,
            ReservationMirror.clinic_reservation_id == clinic_reservation_id,
        ))
        return res.scalar_one_or_none()

    async def upsert_reservation(self, clinic_id: int, clinic_reservation_id: int, **data) -> ReservationMirror:
        obj = await self.get_reservation(clinic_id, clinic_reservation_id)
        if obj is None:
            obj = ReservationMirror(clinic_id=clinic_id, clinic_reservation_id=clinic_reservation_id, **data)
            self.session.add(obj)
        else:
            for k, v in data.items():
                setattr(obj, k, v)
        await self.session.flush()
        return obj

    async def delete_reservation(self, clinic_id: int, clinic_reservation_id: int) -> bool:
        obj = await self.get_reservation(clinic_id, clinic_reservation_id)
        if obj is None:
            return False
        await self.session.delete(obj)
        await self.session.flush()
        return True
