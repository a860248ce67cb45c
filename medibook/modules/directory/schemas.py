from datetime import datetime
from pydantic import BaseModel, Field

class ClinicRegister(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    email: str = Field(min_length=3, max_length=255)
    phone: str = Field(min_length=3, max_length=32)

class ClinicActivation(BaseModel):
    is_active: bool

class ClinicOut(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    database_name: str | None = None
    is_active: bool
    created_at: datetime | None = None
    class Config: from_attributes = True

class ClinicPage(BaseModel):
    data: list[ClinicOut]
    meta: dict

class DirectoryRecord(BaseModel):
    clinic_id: int
    database_name: str | None
    is_active: bool

class DoctorDirectoryOut(BaseModel):
    clinic_id: int
    clinic_doctor_id: int
    name: str
    specialty: str | None = None
    patients_count: int
    class Config: from_attributes = True
