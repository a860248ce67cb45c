from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.modules.doctors.models import Doctor, Service

class DoctorRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Doctor:
        obj = Doctor(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, doctor_id: int) -> Doctor | None:
        return await self.session.get(Doctor, doctor_id)

    async def search(self, *, name: str | None = None, specialty: str | None = None, limit: int = 50) -> Sequence[Doctor]:
        q = select(Doctor).where(Doctor.is_active.is_(True))
        if name:
            q = q.where(Doctor.name.ilike(f"%{name}%"))
        if specialty:
            q = q.where(Doctor.specialty == specialty)
        res = await self.session.execute(q.order_by(Doctor.name.asc()).limit(limit))
        return res.scalars().all()

    async def list(self, *, specialty: str | None = None, active: bool | None = None) -> Sequence[Doctor]:
        q = select(Doctor)
        if specialty:
            q = q.where(Doctor.specialty == specialty)
        if active is not None:
            q = q.where(Doctor.is_active.is_(active))
        res = await self.session.execute(q.order_by(Doctor.name.asc()))
        return res.scalars().all()

class ServiceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Service:
        obj = Service(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def list(self) -> Sequence[Service]:
        res = await self.session.execute(select(Service).order_by(Service.name.asc()))
        return res.scalars().all()
