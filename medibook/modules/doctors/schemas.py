from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

class DoctorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    specialty: str | None = Field(default=None, max_length=120)
    is_active: bool = True

class DoctorOut(BaseModel):
    id: int
    name: str
    specialty: str | None = None
    is_active: bool
    patients_count: int
    created_at: datetime | None = None
    class Config: from_attributes = True

class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    fees: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True

class ServiceOut(BaseModel):
    id: int
    name: str
    fees: Decimal
    is_active: bool
    class Config: from_attributes = True
