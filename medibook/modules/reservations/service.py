"""Admission of bookings against doctor working hours."""
import logging
from datetime import date, datetime, time
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.core.errors import ConflictError, InvalidInputError, NotFoundError
from medibook.core.paging import PageParams, page_meta
from medibook.modules.directory.sync import DirectorySync, directory_sync
from medibook.modules.reservations.models import Reservation, ReservationStatus
from medibook.modules.reservations.repository import ReservationRepository
from medibook.modules.reservations.schemas import ReservationCreate, ReservationUpdate
from medibook.modules.schedule.models import DoctorWorkingHour
from medibook.modules.schedule.repository import DoctorHoursRepository
from medibook.modules.schedule.timeranges import DayOfWeek, to_minutes
from medibook.tenancy.context import TenantContext, tenant_context

logger = logging.getLogger(__name__)

def _snapshot(r: Reservation) -> dict:
    return {
        "id": r.id,
        "clinic_doctor_id": r.doctor_id,
        "doctor_working_hour_id": r.doctor_working_hour_id,
        "patient_id": r.patient_id,
        "date_time": r.date_time,
        "status": r.status,
        "fees": r.fees,
    }

class ReservationService:
    def __init__(self, session: AsyncSession, sync: DirectorySync | None = None, context: TenantContext | None = None):
        self.session = session
        self.sync = sync or directory_sync
        self.context = context or tenant_context
        self.reservations = ReservationRepository(session)
        self.hours = DoctorHoursRepository(session)

    async def _admit(self, doctor_id: int, working_hour_id: int, on: date,
                     exclude_id: int | None = None) -> tuple[DoctorWorkingHour, datetime]:
        wh = await self.hours.get(working_hour_id)
        if not wh or not wh.is_active or wh.doctor_id != doctor_id:
            raise NotFoundError(f"Working hour {working_hour_id} not found for doctor {doctor_id}")

        minutes = to_minutes(wh.start_time)
        date_time = datetime.combine(on, time(minutes // 60, minutes % 60))

        if on < date.today():
            raise InvalidInputError(f"Cannot book {on.isoformat()}: date is in the past")
        if DayOfWeek.of(on).value != wh.day:
            raise InvalidInputError(
                f"{on.isoformat()} is a {DayOfWeek.of(on).value} but working hour {wh.id} is on {wh.day}"
            )
        # patients_limit is not enforced here; only waterfall hours are exclusive
        if wh.waterfall and await self.reservations.has_live(wh.id, exclude_id=exclude_id):
            raise ConflictError(f"Working hour {wh.id} already has a scheduled or taken reservation")
        return wh, date_time

    async def _commit(self, working_hour_id: int) -> None:
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.warning(f"Live reservation index rejected a booking on working hour {working_hour_id}")
            raise ConflictError(f"Working hour {working_hour_id} already has a scheduled or taken reservation")

    def _after_admission(self, reservation: Reservation, bump: bool) -> None:
        database_name = self.context.get()
        if not database_name:
            return
        try:
            if bump:
                self.sync.bump_doctor_patients(database_name, reservation.doctor_id)
            self.sync.mirror_reservation(database_name, _snapshot(reservation))
        except Exception:
            logger.exception(f"Directory propagation for reservation {reservation.id} could not be started")

    async def create_reservation(self, payload: ReservationCreate) -> Reservation:
        wh, date_time = await self._admit(payload.doctor_id, payload.doctor_working_hour_id, payload.date)
        reservation = await self.reservations.create(
            doctor_id=payload.doctor_id,
            patient_id=payload.patient_id,
            doctor_working_hour_id=wh.id,
            date=payload.date,
            date_time=date_time,
            status=ReservationStatus.PENDING.value,
            fees=wh.fees,
            paid=False,
            medical_status=payload.medical_status,
            waterfall=wh.waterfall,
        )
        await self._commit(wh.id)
        logger.info(f"Reservation {reservation.id} admitted on working hour {wh.id} for {payload.date.isoformat()}")
        self._after_admission(reservation, bump=True)
        return reservation

    async def update_reservation(self, reservation_id: int, payload: ReservationUpdate) -> Reservation:
        reservation = await self.get(reservation_id)
        data = payload.model_dump(exclude_unset=True)
        status = data.pop("status", None)
        target = status.value if status else reservation.status

        if target != ReservationStatus.CANCELLED.value:
            wh_id = data.pop("doctor_working_hour_id", None) or reservation.doctor_working_hour_id
            on = data.pop("date", None) or reservation.date
            wh, date_time = await self._admit(reservation.doctor_id, wh_id, on, exclude_id=reservation.id)
            if wh.id != reservation.doctor_working_hour_id:
                reservation.fees = wh.fees
            reservation.doctor_working_hour_id = wh.id
            reservation.date = on
            reservation.date_time = date_time
            reservation.waterfall = wh.waterfall
        else:
            data.pop("doctor_working_hour_id", None)
            data.pop("date", None)

        reservation.status = target
        for k, v in data.items():
            setattr(reservation, k, v)
        await self._commit(reservation.doctor_working_hour_id)
        self._after_admission(reservation, bump=False)
        return reservation

    async def cancel(self, reservation_id: int) -> Reservation:
        reservation = await self.get(reservation_id)
        reservation.status = ReservationStatus.CANCELLED.value
        await self.session.commit()
        logger.info(f"Reservation {reservation.id} cancelled")
        self._after_admission(reservation, bump=False)
        return reservation

    async def get(self, reservation_id: int) -> Reservation:
        reservation = await self.reservations.get(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation with ID {reservation_id} not found")
        return reservation

    async def list(self, params: PageParams, doctor_id: int | None = None,
                   status: ReservationStatus | None = None, on: date | None = None) -> dict:
        rows, total = await self.reservations.list(
            doctor_id=doctor_id, status=status.value if status else None, on=on,
            limit=params.limit, offset=params.offset,
        )
        return {"data": rows, "meta": page_meta(total, params)}

    async def delete(self, reservation_id: int) -> None:
        reservation = await self.get(reservation_id)
        await self.reservations.delete(reservation)
        await self.session.commit()
        database_name = self.context.get()
        if database_name:
            try:
                self.sync.forget_reservation(database_name, reservation_id)
            except Exception:
                logger.exception(f"Directory removal for reservation {reservation_id} could not be started")
