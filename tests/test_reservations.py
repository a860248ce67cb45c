from datetime import date, timedelta
from decimal import Decimal
import logging
import pytest
from sqlalchemy import select

from medibook.core.errors import ConflictError, InvalidInputError, NotFoundError
from medibook.core.paging import PageParams
from medibook.modules.directory.models import DoctorDirectoryEntry, ReservationMirror
from medibook.modules.directory.sync import directory_sync
from medibook.modules.doctors.models import Doctor
from medibook.modules.reservations.models import ReservationStatus
from medibook.modules.reservations.repository import ReservationRepository
from medibook.modules.reservations.schemas import ReservationCreate, ReservationUpdate
from medibook.modules.reservations.service import ReservationService
from medibook.modules.schedule.schemas import DoctorWorkingHourCreate
from medibook.modules.schedule.service import DoctorHoursService
from medibook.modules.schedule.timeranges import DayOfWeek
from medibook.tenancy.context import tenant_context

@pytest.fixture
async def doctor(tenant_session):
    d = Doctor(name="Dr. Hany", specialty="pediatrics")
    tenant_session.add(d)
    await tenant_session.commit()
    return d

@pytest.fixture
async def waterfall_hour(tenant_session, doctor):
    rows = await DoctorHoursService(tenant_session).set_working_hours(doctor.id, DoctorWorkingHourCreate(
        day="MONDAY", start_time="09:30:00", end_time="13:00:00", fees=Decimal("200"),
    ))
    return rows[0]

@pytest.fixture
async def fixed_hour(tenant_session, doctor):
    rows = await DoctorHoursService(tenant_session).set_working_hours(doctor.id, DoctorWorkingHourCreate(
        day="MONDAY", start_time="15:00:00", end_time="15:30:00", waterfall=False, session_time="00:30:00",
    ))
    return rows[0]

def booking(doctor, wh, on, **kw) -> ReservationCreate:
    return ReservationCreate(doctor_id=doctor.id, doctor_working_hour_id=wh.id, date=on, **kw)

async def test_admission_defaults(tenant_session, doctor, waterfall_hour, next_weekday):
    monday = next_weekday(DayOfWeek.MONDAY)
    r = await ReservationService(tenant_session).create_reservation(booking(doctor, waterfall_hour, monday, patient_id=7))
    assert r.status == "pending"
    assert r.fees == Decimal("200")
    assert r.paid is False
    assert r.waterfall is True
    assert (r.date_time.hour, r.date_time.minute) == (9, 30)
    assert r.date_time.date() == monday

async def test_waterfall_slot_admits_one_live_reservation(tenant_session, doctor, waterfall_hour, next_weekday):
    svc = ReservationService(tenant_session)
    monday = next_weekday(DayOfWeek.MONDAY)
    first = await svc.create_reservation(booking(doctor, waterfall_hour, monday))
    await svc.update_reservation(first.id, ReservationUpdate(status="scheduled"))

    with pytest.raises(ConflictError):
        await svc.create_reservation(booking(doctor, waterfall_hour, monday))

    await svc.cancel(first.id)
    second = await svc.create_reservation(booking(doctor, waterfall_hour, monday))
    assert second.status == "pending"

async def test_pending_reservations_do_not_block(tenant_session, doctor, waterfall_hour, next_weekday):
    svc = ReservationService(tenant_session)
    monday = next_weekday(DayOfWeek.MONDAY)
    await svc.create_reservation(booking(doctor, waterfall_hour, monday))
    await svc.create_reservation(booking(doctor, waterfall_hour, monday))

async def test_update_excludes_itself_from_the_conflict_scan(tenant_session, doctor, waterfall_hour, next_weekday):
    svc = ReservationService(tenant_session)
    monday = next_weekday(DayOfWeek.MONDAY)
    r = await svc.create_reservation(booking(doctor, waterfall_hour, monday))
    await svc.update_reservation(r.id, ReservationUpdate(status="scheduled"))
    updated = await svc.update_reservation(r.id, ReservationUpdate(status="taken", paid=True))
    assert (updated.status, updated.paid) == ("taken", True)

async def test_fixed_hours_are_not_exclusive(tenant_session, doctor, fixed_hour, next_weekday):
    svc = ReservationService(tenant_session)
    monday = next_weekday(DayOfWeek.MONDAY)
    for _ in range(3):
        r = await svc.create_reservation(booking(doctor, fixed_hour, monday))
        await svc.update_reservation(r.id, ReservationUpdate(status="scheduled"))

async def test_weekday_mismatch_is_rejected(tenant_session, doctor, waterfall_hour, next_weekday):
    tuesday = next_weekday(DayOfWeek.TUESDAY) + timedelta(weeks=52)
    with pytest.raises(InvalidInputError, match="TUESDAY"):
        await ReservationService(tenant_session).create_reservation(booking(doctor, waterfall_hour, tuesday))

async def test_past_dates_are_rejected(tenant_session, doctor, waterfall_hour, next_weekday):
    last_monday = next_weekday(DayOfWeek.MONDAY) - timedelta(weeks=1)
    if last_monday == date.today():
        last_monday -= timedelta(weeks=1)
    with pytest.raises(InvalidInputError, match="past"):
        await ReservationService(tenant_session).create_reservation(booking(doctor, waterfall_hour, last_monday))

async def test_working_hour_must_belong_to_doctor(tenant_session, doctor, waterfall_hour, next_weekday):
    other = Doctor(name="Dr. Dina")
    tenant_session.add(other)
    await tenant_session.commit()
    svc = ReservationService(tenant_session)
    monday = next_weekday(DayOfWeek.MONDAY)
    with pytest.raises(NotFoundError):
        await svc.create_reservation(booking(other, waterfall_hour, monday))
    waterfall_hour.is_active = False
    await tenant_session.commit()
    with pytest.raises(NotFoundError):
        await svc.create_reservation(booking(doctor, waterfall_hour, monday))

async def test_storage_index_catches_the_race(tenant_session, doctor, waterfall_hour, next_weekday, monkeypatch):
    svc = ReservationService(tenant_session)
    monday = next_weekday(DayOfWeek.MONDAY)
    first = await svc.create_reservation(booking(doctor, waterfall_hour, monday))
    second = await svc.create_reservation(booking(doctor, waterfall_hour, monday))
    await svc.update_reservation(first.id, ReservationUpdate(status="scheduled"))

    async def stale_check(self, working_hour_id, exclude_id=None):
        return False
    monkeypatch.setattr(ReservationRepository, "has_live", stale_check)

    with pytest.raises(ConflictError):
        await svc.update_reservation(second.id, ReservationUpdate(status="taken"))
    assert (await svc.get(second.id)).status == "pending"

async def test_cancel_skips_admission(tenant_session, doctor, waterfall_hour, next_weekday):
    svc = ReservationService(tenant_session)
    r = await svc.create_reservation(booking(doctor, waterfall_hour, next_weekday(DayOfWeek.MONDAY)))
    waterfall_hour.is_active = False
    await tenant_session.commit()
    cancelled = await svc.update_reservation(r.id, ReservationUpdate(status="cancelled"))
    assert cancelled.status == "cancelled"

async def test_list_get_delete(tenant_session, doctor, waterfall_hour, fixed_hour, next_weekday):
    svc = ReservationService(tenant_session)
    monday = next_weekday(DayOfWeek.MONDAY)
    a = await svc.create_reservation(booking(doctor, waterfall_hour, monday))
    b = await svc.create_reservation(booking(doctor, fixed_hour, monday))
    await svc.cancel(a.id)

    page = await svc.list(PageParams(page=1, limit=10))
    assert [r.id for r in page["data"]] == [b.id, a.id]
    assert page["meta"]["total"] == 2
    cancelled = await svc.list(PageParams(), status=ReservationStatus.CANCELLED)
    assert [r.id for r in cancelled["data"]] == [a.id]

    await svc.delete(a.id)
    with pytest.raises(NotFoundError):
        await svc.get(a.id)

async def test_admission_is_mirrored_to_the_directory(central, clinic, tenant_session, doctor, waterfall_hour, next_weekday):
    with tenant_context.scope(clinic.database_name):
        r = await ReservationService(tenant_session).create_reservation(
            booking(doctor, waterfall_hour, next_weekday(DayOfWeek.MONDAY))
        )
    await directory_sync.drain()

    async with central() as s:
        mirror = (await s.execute(select(ReservationMirror))).scalar_one()
        entry = (await s.execute(select(DoctorDirectoryEntry))).scalar_one()
    assert (mirror.clinic_id, mirror.clinic_reservation_id, mirror.status) == (clinic.id, r.id, "pending")
    assert entry.patients_count == 1

    await tenant_session.refresh(doctor)
    assert doctor.patients_count == 1

async def test_sync_failure_does_not_fail_the_booking(tenant_session, doctor, waterfall_hour, next_weekday, caplog):
    class BrokenSync:
        def bump_doctor_patients(self, *args):
            raise RuntimeError("directory offline")

        def mirror_reservation(self, *args):
            raise RuntimeError("directory offline")

    with tenant_context.scope("clinic_1"), caplog.at_level(logging.ERROR):
        r = await ReservationService(tenant_session, sync=BrokenSync()).create_reservation(
            booking(doctor, waterfall_hour, next_weekday(DayOfWeek.MONDAY))
        )
    assert r.id is not None
    assert "could not be started" in caplog.text
    assert (await ReservationService(tenant_session).get(r.id)).status == "pending"
