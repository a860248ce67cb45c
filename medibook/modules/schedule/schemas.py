from datetime import date
from decimal import Decimal
from pydantic import BaseModel, Field
from medibook.modules.schedule.timeranges import DayOfWeek

TIME_PATTERN = r"^\d{2}:\d{2}(:\d{2})?$"

class TimeRangeIn(BaseModel):
    start_time: str = Field(pattern=TIME_PATTERN, examples=["09:00:00"])
    end_time: str = Field(pattern=TIME_PATTERN, examples=["12:00:00"])

class DayWorkingRanges(BaseModel):
    day: DayOfWeek
    working_ranges: list[TimeRangeIn] = Field(min_length=1)

class DayBreakRanges(BaseModel):
    day: DayOfWeek
    break_ranges: list[TimeRangeIn] = Field(min_length=1)

class WorkingHoursSet(BaseModel):
    branch_id: int | None = None
    days: list[DayWorkingRanges] = Field(min_length=1)

class BreakHoursSet(BaseModel):
    branch_id: int | None = None
    days: list[DayBreakRanges] = Field(min_length=1)

class WorkingHourOut(BaseModel):
    id: int
    day: DayOfWeek
    branch_id: int | None = None
    start_time: str
    end_time: str
    range_order: int
    is_active: bool
    class Config: from_attributes = True

class BreakHourOut(BaseModel):
    id: int
    day: DayOfWeek
    branch_id: int | None = None
    start_time: str
    end_time: str
    break_order: int
    is_active: bool
    class Config: from_attributes = True

class ClinicWorkingHourOut(WorkingHourOut):
    clinic_id: int

class DaySchedule(BaseModel):
    day: DayOfWeek
    working_hours: list[WorkingHourOut]
    break_hours: list[BreakHourOut]

class AvailableDay(BaseModel):
    day: DayOfWeek
    branch_id: int | None = None
    working_ranges: list[TimeRangeIn]

# ---- Doctor working hours ----

class DoctorWorkingHourCreate(BaseModel):
    day: DayOfWeek
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    branch_id: int | None = None
    waterfall: bool = True
    session_time: str | None = Field(default=None, pattern=TIME_PATTERN, examples=["00:30:00"])
    patients_limit: int | None = Field(default=None, ge=1)
    busy: bool = False
    fees: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True
    service_ids: list[int] = []

class DoctorWorkingHourBulk(BaseModel):
    working_hours: list[DoctorWorkingHourCreate] = Field(min_length=1)

class DoctorWorkingHourUpdate(BaseModel):
    day: DayOfWeek | None = None
    start_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    end_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    waterfall: bool | None = None
    session_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    patients_limit: int | None = Field(default=None, ge=1)
    busy: bool | None = None
    fees: Decimal | None = Field(default=None, ge=0)
    is_active: bool | None = None
    service_ids: list[int] | None = None

class DoctorWorkingHourOut(BaseModel):
    id: int
    doctor_id: int
    day: DayOfWeek
    branch_id: int | None = None
    start_time: str
    end_time: str
    session_time: str | None = None
    waterfall: bool
    patients_limit: int | None = None
    busy: bool
    fees: Decimal
    is_active: bool
    service_ids: list[int] = []
    class Config: from_attributes = True

class SlotOut(BaseModel):
    working_hour_id: int
    slot_date: date
    start_time: str
    end_time: str
    waterfall: bool
    fees: Decimal

class DoctorWorkingHourBulkResult(BaseModel):
    created: list[DoctorWorkingHourOut]
    skipped: list[str]
