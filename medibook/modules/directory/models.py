from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Numeric, ForeignKey, DateTime, UniqueConstraint
from medibook.core.base import Base, TimestampedMixin

class Clinic(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(160), index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    phone: Mapped[str] = mapped_column(String(32), unique=True)
    # set once at provisioning, never reassigned
    database_name: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

# Read mirrors of tenant data for cross-clinic search

class DoctorDirectoryEntry(Base, TimestampedMixin):
    __tablename__ = "doctor_directory_entry"
    __table_args__ = (UniqueConstraint("clinic_id", "clinic_doctor_id", name="uq_doctor_directory_clinic_doctor"),)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinic.id", ondelete="CASCADE"), index=True)
    clinic_doctor_id: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(160), index=True)
    specialty: Mapped[str | None] = mapped_column(String(120), nullable=True)
    patients_count: Mapped[int] = mapped_column(Integer, default=0)

class ReservationMirror(Base, TimestampedMixin):
    __tablename__ = "reservation_mirror"
    __table_args__ = (UniqueConstraint("clinic_id", "clinic_reservation_id", name="uq_reservation_mirror_clinic_reservation"),)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinic.id", ondelete="CASCADE"), index=True)
    clinic_reservation_id: Mapped[int] = mapped_column(Integer)
    clinic_doctor_id: Mapped[int] = mapped_column(Integer)
    doctor_working_hour_id: Mapped[int] = mapped_column(Integer)
    patient_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    date_time: Mapped[datetime] = mapped_column(DateTime)
    status: Mapped[str] = mapped_column(String(16))
    fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
