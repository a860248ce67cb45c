import logging
from collections import defaultdict
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.core.errors import InvalidInputError, NotFoundError, ConflictError
from medibook.modules.directory.repository import ClinicRepository
from medibook.modules.directory.sync import DirectorySync, directory_sync
from medibook.modules.doctors.models import Doctor
from medibook.modules.reservations.repository import ReservationRepository
from medibook.modules.schedule.models import DoctorWorkingHour
from medibook.modules.schedule.repository import (
    ClinicHoursRepository, TenantHoursRepository, DoctorHoursRepository, _ANY
)
from medibook.modules.schedule.schemas import (
    WorkingHoursSet, BreakHoursSet, DoctorWorkingHourCreate, DoctorWorkingHourUpdate
)
from medibook.modules.schedule.timeranges import (
    DayOfWeek, TimeRange, validate_time_range, validate_working_ranges, validate_break_ranges,
    check_against_existing, generate_slots, session_minutes, subtract_breaks, to_minutes
)

logger = logging.getLogger(__name__)

def _batch_days(days) -> list[str]:
    seen: list[str] = []
    for d in days:
        if d.day.value in seen:
            raise InvalidInputError(f"Day {d.day.value} appears more than once in the request")
        seen.append(d.day.value)
    return seen

class ClinicHoursService:
    """Clinic-wide default hours, kept centrally and copied into the clinic's own database."""

    def __init__(self, session: AsyncSession, sync: DirectorySync | None = None):
        self.session = session
        self.sync = sync or directory_sync
        self.hours = ClinicHoursRepository(session)
        self.clinics = ClinicRepository(session)

    async def _clinic(self, clinic_id: int):
        clinic = await self.clinics.get(clinic_id)
        if not clinic:
            raise NotFoundError(f"Clinic with ID {clinic_id} not found")
        return clinic

    def _mirror(self, clinic, days: list[str], branch_id: int | None, **batch) -> None:
        if not clinic.database_name:
            return
        try:
            self.sync.mirror_clinic_hours(clinic.database_name, days, branch_id, **batch)
        except Exception:
            logger.exception(f"Could not schedule hours mirror for clinic {clinic.id}")

    async def set_working_hours(self, clinic_id: int, payload: WorkingHoursSet):
        """Replace the working ranges of every (day, branch) scope in the batch.

        New ranges are checked against every range already persisted for the scope
        before anything is replaced, so editing a range in place (09-12 to 09-13)
        is a Conflict. Call `delete_day` for the scope first.
        """
        clinic = await self._clinic(clinic_id)
        days = _batch_days(payload.days)
        by_day: dict[str, list[dict]] = {}
        for entry in payload.days:
            ranges = validate_working_ranges(entry.working_ranges, entry.day)
            existing = await self.hours.list_working(clinic_id, entry.day.value, payload.branch_id)
            check_against_existing(ranges, existing, entry.day, kind="working hours")
            by_day[entry.day.value] = [r.as_dict() for r in ranges]

        rows = await self.hours.replace_working(clinic_id, days, payload.branch_id, by_day)
        await self.session.commit()
        logger.info(f"Working hours set for clinic {clinic_id} on {days} (branch {payload.branch_id})")
        self._mirror(clinic, days, payload.branch_id, working=by_day)
        return rows

    async def set_break_hours(self, clinic_id: int, payload: BreakHoursSet):
        clinic = await self._clinic(clinic_id)
        days = _batch_days(payload.days)
        by_day: dict[str, list[dict]] = {}
        for entry in payload.days:
            working = await self.hours.list_working(clinic_id, entry.day.value, payload.branch_id)
            if not working:
                raise InvalidInputError(
                    f"No working hours defined for {entry.day.value}; set working hours before breaks"
                )
            breaks = validate_break_ranges(entry.break_ranges, working, entry.day)
            existing = await self.hours.list_breaks(clinic_id, entry.day.value, payload.branch_id)
            check_against_existing(breaks, existing, entry.day, kind="break hours")
            by_day[entry.day.value] = [b.as_dict() for b in breaks]

        rows = await self.hours.replace_breaks(clinic_id, days, payload.branch_id, by_day)
        await self.session.commit()
        logger.info(f"Break hours set for clinic {clinic_id} on {days} (branch {payload.branch_id})")
        self._mirror(clinic, days, payload.branch_id, breaks=by_day)
        return rows

    async def get_working_hours(self, clinic_id: int, day: DayOfWeek | None = None, branch_id=_ANY):
        await self._clinic(clinic_id)
        return await self.hours.list_working(clinic_id, day.value if day else None, branch_id)

    async def get_break_hours(self, clinic_id: int, day: DayOfWeek | None = None, branch_id=_ANY):
        await self._clinic(clinic_id)
        return await self.hours.list_breaks(clinic_id, day.value if day else None, branch_id)

    async def weekly_schedule(self, clinic_id: int, branch_id=_ANY) -> list[dict]:
        await self._clinic(clinic_id)
        working = await self.hours.list_working(clinic_id, branch_id=branch_id)
        breaks = await self.hours.list_breaks(clinic_id, branch_id=branch_id)
        week = []
        for day in DayOfWeek:
            w = [r for r in working if r.day == day.value]
            b = [r for r in breaks if r.day == day.value]
            if w or b:
                week.append({"day": day, "working_hours": w, "break_hours": b})
        return week

    async def delete_day(self, clinic_id: int, day: DayOfWeek, branch_id: int | None = None) -> None:
        clinic = await self._clinic(clinic_id)
        await self.hours.replace_breaks(clinic_id, [day.value], branch_id, {})
        await self.hours.replace_working(clinic_id, [day.value], branch_id, {})
        await self.session.commit()
        logger.info(f"Hours for {day.value} (branch {branch_id}) removed from clinic {clinic_id}")
        self._mirror(clinic, [day.value], branch_id, working={}, breaks={})

    async def search_working_hours(self, clinic_id: int | None = None, day: DayOfWeek | None = None,
                                   start_time: str | None = None, end_time: str | None = None):
        rows = await self.hours.search_working(clinic_id, day.value if day else None)
        if start_time:
            rows = [r for r in rows if to_minutes(r.start_time) >= to_minutes(start_time)]
        if end_time:
            rows = [r for r in rows if to_minutes(r.end_time) <= to_minutes(end_time)]
        return rows

class DoctorHoursService:
    """Per-doctor working hours inside a clinic database."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.hours = DoctorHoursRepository(session)
        self.defaults = TenantHoursRepository(session)
        self.reservations = ReservationRepository(session)

    async def _doctor(self, doctor_id: int) -> Doctor:
        doctor = await self.session.get(Doctor, doctor_id)
        if not doctor:
            raise NotFoundError(f"Doctor with ID {doctor_id} not found")
        return doctor

    async def _services(self, service_ids: list[int]):
        wanted = set(service_ids)
        services = await self.hours.load_services(list(wanted))
        missing = wanted - {s.id for s in services}
        if missing:
            raise NotFoundError(f"Services not found: {sorted(missing)}")
        return services

    async def get(self, doctor_id: int, working_hour_id: int) -> DoctorWorkingHour:
        wh = await self.hours.get(working_hour_id)
        if not wh or wh.doctor_id != doctor_id:
            raise NotFoundError(f"Working hour {working_hour_id} not found for doctor {doctor_id}")
        return wh

    async def _add(self, doctor_id: int, payload: DoctorWorkingHourCreate) -> list[DoctorWorkingHour]:
        validate_time_range(payload.start_time, payload.end_time)
        services = await self._services(payload.service_ids)
        if not payload.waterfall and session_minutes(payload.session_time) > 0:
            pieces = generate_slots(payload.start_time, payload.end_time, payload.session_time)
        else:
            pieces = [TimeRange(payload.start_time, payload.end_time)]
        siblings = await self.hours.list(doctor_id, day=payload.day.value, branch_id=payload.branch_id)
        check_against_existing(pieces, siblings, payload.day, kind="doctor working hours")

        limit = payload.patients_limit if payload.waterfall else (payload.patients_limit or 1)
        data = payload.model_dump(exclude={"day", "start_time", "end_time", "service_ids", "patients_limit"})
        rows = []
        for piece in pieces:
            rows.append(await self.hours.create(
                services, doctor_id=doctor_id, day=payload.day.value,
                start_time=piece.start_time, end_time=piece.end_time, patients_limit=limit, **data,
            ))
        return rows

    async def set_working_hours(self, doctor_id: int, payload: DoctorWorkingHourCreate) -> list[DoctorWorkingHour]:
        """Fixed-slot hours are stored one row per generated slot; waterfall hours as a single row."""
        await self._doctor(doctor_id)
        rows = await self._add(doctor_id, payload)
        await self.session.commit()
        logger.info(f"Doctor {doctor_id}: {len(rows)} working hour(s) added on {payload.day.value}")
        return rows

    async def bulk_set(self, doctor_id: int, entries: list[DoctorWorkingHourCreate]) -> dict:
        await self._doctor(doctor_id)
        created: list[DoctorWorkingHour] = []
        skipped: list[str] = []
        for entry in entries:
            try:
                created.extend(await self._add(doctor_id, entry))
            except ConflictError as e:
                logger.info(f"Doctor {doctor_id}: skipping {entry.day.value} {entry.start_time}-{entry.end_time}: {e.message}")
                skipped.append(e.message)
        await self.session.commit()
        return {"created": created, "skipped": skipped}

    async def update(self, doctor_id: int, working_hour_id: int, payload: DoctorWorkingHourUpdate) -> DoctorWorkingHour:
        wh = await self.get(doctor_id, working_hour_id)
        data = payload.model_dump(exclude_unset=True)
        day = data.pop("day", None)
        if day is not None and day != wh.day:
            raise InvalidInputError(f"Working hour {wh.id} belongs to {wh.day} and cannot be moved to {day.value}")

        start, end = data.pop("start_time", None) or wh.start_time, data.pop("end_time", None) or wh.end_time
        validate_time_range(start, end)
        if (start, end) != (wh.start_time, wh.end_time):
            siblings = [s for s in await self.hours.list(doctor_id, day=wh.day, branch_id=wh.branch_id) if s.id != wh.id]
            check_against_existing([TimeRange(start, end)], siblings, wh.day, kind="doctor working hours")
            wh.start_time, wh.end_time = start, end

        service_ids = data.pop("service_ids", None)
        if service_ids is not None:
            wh.services = list(await self._services(service_ids))
        for k, v in data.items():
            setattr(wh, k, v)
        await self.session.commit()
        return wh

    async def delete(self, doctor_id: int, working_hour_id: int) -> None:
        wh = await self.get(doctor_id, working_hour_id)
        await self.hours.delete(wh)
        await self.session.commit()

    async def available_slots(self, doctor_id: int, on: date) -> list[dict]:
        """Bookable ranges on a calendar date: free waterfall ranges and fixed slots."""
        await self._doctor(doctor_id)
        if on < date.today():
            raise InvalidInputError(f"Date {on.isoformat()} is in the past")
        day = DayOfWeek.of(on)
        out = []
        for wh in await self.hours.list(doctor_id, day=day.value, active_only=True):
            if wh.busy:
                continue
            if wh.waterfall:
                if await self.reservations.has_live(wh.id):
                    continue
                pieces = [TimeRange(wh.start_time, wh.end_time)]
            else:
                pieces = generate_slots(wh.start_time, wh.end_time, wh.session_time) if wh.session_time \
                    else [TimeRange(wh.start_time, wh.end_time)]
            out.extend(
                {"working_hour_id": wh.id, "slot_date": on, "start_time": p.start_time, "end_time": p.end_time,
                 "waterfall": wh.waterfall, "fees": wh.fees}
                for p in pieces
            )
        return out

    async def default_schedule(self, doctor_id: int, day: DayOfWeek | None = None, branch_id=_ANY) -> list[dict]:
        """The clinic's default week (its local copy), with breaks cut out of the working ranges.

        One entry per (day, branch) scope; a branch's breaks only cut that branch's ranges.
        """
        await self._doctor(doctor_id)
        working = await self.defaults.list_working(day.value if day else None, branch_id)
        breaks = await self.defaults.list_breaks(day.value if day else None, branch_id)
        by_scope = defaultdict(lambda: ([], []))
        for w in working:
            by_scope[(w.day, w.branch_id)][0].append(w)
        for b in breaks:
            by_scope[(b.day, b.branch_id)][1].append(b)
        order = [d.value for d in DayOfWeek]
        scopes = sorted(by_scope, key=lambda s: (order.index(s[0]), s[1] is not None, s[1] or 0))
        return [
            {"day": DayOfWeek(d), "branch_id": b, "working_ranges": [r.as_dict() for r in subtract_breaks(*by_scope[(d, b)])]}
            for d, b in scopes
        ]

    async def list(self, doctor_id: int, day: DayOfWeek | None = None, branch_id=_ANY):
        await self._doctor(doctor_id)
        return await self.hours.list(doctor_id, day=day.value if day else None, branch_id=branch_id)
