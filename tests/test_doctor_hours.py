from datetime import date, datetime, time, timedelta
from decimal import Decimal
import pytest

from medibook.core.errors import ConflictError, InvalidInputError, NotFoundError
from medibook.modules.doctors.models import Doctor, Service
from medibook.modules.reservations.models import Reservation
from medibook.modules.schedule.models import WorkingHour, BreakHour
from medibook.modules.schedule.schemas import DoctorWorkingHourCreate, DoctorWorkingHourUpdate
from medibook.modules.schedule.service import DoctorHoursService
from medibook.modules.schedule.timeranges import DayOfWeek

@pytest.fixture
async def doctor(tenant_session):
    d = Doctor(name="Dr. Omar", specialty="dermatology")
    tenant_session.add(d)
    await tenant_session.commit()
    return d

def hours(**kw) -> DoctorWorkingHourCreate:
    data = {"day": "MONDAY", "start_time": "09:00:00", "end_time": "12:00:00"}
    data.update(kw)
    return DoctorWorkingHourCreate(**data)

async def test_fixed_hours_are_stored_as_slots(tenant_session, doctor):
    rows = await DoctorHoursService(tenant_session).set_working_hours(
        doctor.id, hours(waterfall=False, session_time="00:30:00", fees=Decimal("150"))
    )
    assert [(r.start_time, r.end_time) for r in rows] == [
        ("09:00:00", "09:30:00"), ("09:30:00", "10:00:00"), ("10:00:00", "10:30:00"),
        ("10:30:00", "11:00:00"), ("11:00:00", "11:30:00"), ("11:30:00", "12:00:00"),
    ]
    assert all(r.patients_limit == 1 and not r.waterfall for r in rows)

async def test_waterfall_hours_are_one_row(tenant_session, doctor):
    rows = await DoctorHoursService(tenant_session).set_working_hours(doctor.id, hours(session_time="00:30:00"))
    assert len(rows) == 1
    assert rows[0].waterfall is True
    assert rows[0].patients_limit is None

async def test_overlapping_doctor_hours_conflict(tenant_session, doctor):
    svc = DoctorHoursService(tenant_session)
    await svc.set_working_hours(doctor.id, hours())
    with pytest.raises(ConflictError):
        await svc.set_working_hours(doctor.id, hours(start_time="11:00:00", end_time="13:00:00"))
    await svc.set_working_hours(doctor.id, hours(day="TUESDAY"))

async def test_bulk_skips_overlapping_entries(tenant_session, doctor):
    svc = DoctorHoursService(tenant_session)
    result = await svc.bulk_set(doctor.id, [
        hours(),
        hours(start_time="10:00:00", end_time="11:00:00"),
        hours(start_time="12:00:00", end_time="14:00:00"),
    ])
    assert [(r.start_time, r.end_time) for r in result["created"]] == [("09:00:00", "12:00:00"), ("12:00:00", "14:00:00")]
    assert len(result["skipped"]) == 1
    assert len(await svc.list(doctor.id)) == 2

async def test_linked_services(tenant_session, doctor):
    svc = DoctorHoursService(tenant_session)
    consult = Service(name="Consultation", fees=Decimal("100"))
    tenant_session.add(consult)
    await tenant_session.commit()

    rows = await svc.set_working_hours(doctor.id, hours(service_ids=[consult.id]))
    assert rows[0].service_ids == [consult.id]
    with pytest.raises(NotFoundError, match="Services not found"):
        await svc.set_working_hours(doctor.id, hours(day="FRIDAY", service_ids=[consult.id, 999]))

async def test_update_in_place(tenant_session, doctor):
    svc = DoctorHoursService(tenant_session)
    wh = (await svc.set_working_hours(doctor.id, hours()))[0]
    await svc.set_working_hours(doctor.id, hours(start_time="13:00:00", end_time="15:00:00"))

    updated = await svc.update(doctor.id, wh.id, DoctorWorkingHourUpdate(end_time="12:30:00", busy=True))
    assert (updated.start_time, updated.end_time, updated.busy) == ("09:00:00", "12:30:00", True)

    with pytest.raises(ConflictError):
        await svc.update(doctor.id, wh.id, DoctorWorkingHourUpdate(end_time="14:00:00"))
    with pytest.raises(InvalidInputError, match="cannot be moved"):
        await svc.update(doctor.id, wh.id, DoctorWorkingHourUpdate(day="TUESDAY"))
    await svc.update(doctor.id, wh.id, DoctorWorkingHourUpdate(day="MONDAY", fees=Decimal("80")))

async def test_hours_belong_to_their_doctor(tenant_session, doctor):
    svc = DoctorHoursService(tenant_session)
    other = Doctor(name="Dr. Mona")
    tenant_session.add(other)
    await tenant_session.commit()
    wh = (await svc.set_working_hours(doctor.id, hours()))[0]
    with pytest.raises(NotFoundError):
        await svc.delete(other.id, wh.id)
    await svc.delete(doctor.id, wh.id)
    assert await svc.list(doctor.id) == []

async def test_unknown_doctor(tenant_session):
    with pytest.raises(NotFoundError):
        await DoctorHoursService(tenant_session).set_working_hours(404, hours())

async def test_available_slots(tenant_session, doctor, next_weekday):
    svc = DoctorHoursService(tenant_session)
    await svc.set_working_hours(doctor.id, hours(waterfall=False, session_time="01:00:00", end_time="11:00:00"))
    water = (await svc.set_working_hours(doctor.id, hours(start_time="14:00:00", end_time="16:00:00")))[0]
    await svc.set_working_hours(doctor.id, hours(start_time="17:00:00", end_time="18:00:00", busy=True))

    monday = next_weekday(DayOfWeek.MONDAY)
    slots = await svc.available_slots(doctor.id, monday)
    assert [(s["start_time"], s["waterfall"]) for s in slots] == [
        ("09:00:00", False), ("10:00:00", False), ("14:00:00", True),
    ]
    assert await svc.available_slots(doctor.id, monday + timedelta(days=1)) == []

    tenant_session.add(Reservation(
        doctor_id=doctor.id, doctor_working_hour_id=water.id, date=monday,
        date_time=datetime.combine(monday, time(14, 0)), status="scheduled", waterfall=True,
    ))
    await tenant_session.commit()
    slots = await svc.available_slots(doctor.id, monday)
    assert all(not s["waterfall"] for s in slots)

    with pytest.raises(InvalidInputError):
        await svc.available_slots(doctor.id, date.today() - timedelta(days=1))

async def test_default_schedule_uses_the_clinic_copy(tenant_session, doctor):
    tenant_session.add_all([
        WorkingHour(day="MONDAY", start_time="09:00:00", end_time="17:00:00", range_order=0),
        BreakHour(day="MONDAY", start_time="12:00:00", end_time="13:00:00", break_order=0),
        WorkingHour(day="WEDNESDAY", start_time="10:00:00", end_time="14:00:00", range_order=0),
    ])
    await tenant_session.commit()
    week = await DoctorHoursService(tenant_session).default_schedule(doctor.id)
    assert week == [
        {"day": DayOfWeek.MONDAY, "branch_id": None, "working_ranges": [
            {"start_time": "09:00:00", "end_time": "12:00:00"},
            {"start_time": "13:00:00", "end_time": "17:00:00"},
        ]},
        {"day": DayOfWeek.WEDNESDAY, "branch_id": None, "working_ranges": [{"start_time": "10:00:00", "end_time": "14:00:00"}]},
    ]

async def test_default_schedule_keeps_branches_apart(tenant_session, doctor):
    tenant_session.add_all([
        WorkingHour(day="MONDAY", branch_id=1, start_time="09:00:00", end_time="17:00:00", range_order=0),
        WorkingHour(day="MONDAY", branch_id=2, start_time="10:00:00", end_time="12:00:00", range_order=0),
        BreakHour(day="MONDAY", branch_id=2, start_time="11:00:00", end_time="12:00:00", break_order=0),
    ])
    await tenant_session.commit()
    svc = DoctorHoursService(tenant_session)

    assert await svc.default_schedule(doctor.id) == [
        {"day": DayOfWeek.MONDAY, "branch_id": 1, "working_ranges": [{"start_time": "09:00:00", "end_time": "17:00:00"}]},
        {"day": DayOfWeek.MONDAY, "branch_id": 2, "working_ranges": [{"start_time": "10:00:00", "end_time": "11:00:00"}]},
    ]
    assert await svc.default_schedule(doctor.id, DayOfWeek.MONDAY, branch_id=1) == [
        {"day": DayOfWeek.MONDAY, "branch_id": 1, "working_ranges": [{"start_time": "09:00:00", "end_time": "17:00:00"}]},
    ]
    assert await svc.default_schedule(doctor.id, branch_id=None) == []
