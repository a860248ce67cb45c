import datetime as dt
from decimal import Decimal
from pydantic import BaseModel, Field
from medibook.modules.reservations.models import ReservationStatus

class ReservationCreate(BaseModel):
    doctor_id: int
    doctor_working_hour_id: int
    date: dt.date = Field(examples=["2030-01-07"])
    patient_id: int | None = None
    medical_status: str | None = Field(default=None, max_length=64)

class ReservationUpdate(BaseModel):
    doctor_working_hour_id: int | None = None
    date: dt.date | None = None
    status: ReservationStatus | None = None
    paid: bool | None = None
    medical_status: str | None = Field(default=None, max_length=64)

class ReservationOut(BaseModel):
    id: int
    doctor_id: int
    patient_id: int | None = None
    doctor_working_hour_id: int
    date: dt.date
    date_time: dt.datetime
    status: ReservationStatus
    fees: Decimal
    paid: bool
    medical_status: str | None = None
    waterfall: bool
    created_at: dt.datetime | None = None
    class Config: from_attributes = True

class ReservationPage(BaseModel):
    data: list[ReservationOut]
    meta: dict
