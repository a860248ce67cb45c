from datetime import date
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from medibook.modules.reservations.models import Reservation, LIVE_STATUSES

class ReservationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Reservation:
        obj = Reservation(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, reservation_id: int) -> Reservation | None:
        return await self.session.get(Reservation, reservation_id)

    async def has_live(self, working_hour_id: int, exclude_id: int | None = None) -> bool:
        q = select(Reservation.id).where(
            Reservation.doctor_working_hour_id == working_hour_id,
            Reservation.status.in_(LIVE_STATUSES),
        )
        if exclude_id is not None:
            q = q.where(Reservation.id != exclude_id)
        res = await self.session.execute(q.limit(1))
        return res.first() is not None

    async def list(self, *, doctor_id: int | None = None, status: str | None = None, on: date | None = None,
                   limit: int = 10, offset: int = 0) -> tuple[Sequence[Reservation], int]:
        cond = []
        if doctor_id:
            cond.append(Reservation.doctor_id == doctor_id)
        if status:
            cond.append(Reservation.status == status)
        if on:
            cond.append(Reservation.date == on)
        q = select(Reservation).where(*cond).order_by(Reservation.date_time.desc(), Reservation.id.desc())
        res = await self.session.execute(q.limit(limit).offset(offset))
        total = (await self.session.execute(select(func.count(Reservation.id)).where(*cond))).scalar_one()
        return res.scalars().all(), total

    async def delete(self, obj: Reservation) -> None:
        await self.session.delete(obj)
        await self.session.flush()
