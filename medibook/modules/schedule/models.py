from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, Boolean, Numeric, ForeignKey, Index, Table, Column
from medibook.core.base import Base, TenantBase, TimestampedMixin
from medibook.modules.doctors.models import Service

# ---- Central: clinic-wide defaults ----

class ClinicWorkingHour(Base, TimestampedMixin):
    __tablename__ = "clinic_working_hour"
    __table_args__ = (Index("ix_clinic_working_hour_scope", "clinic_id", "day", "branch_id"),)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinic.id", ondelete="CASCADE"))
    day: Mapped[str] = mapped_column(String(9))  # MONDAY..SUNDAY
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[str] = mapped_column(String(8))  # HH:MM:SS
    end_time: Mapped[str] = mapped_column(String(8))
    range_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

class ClinicBreakHour(Base, TimestampedMixin):
    __tablename__ = "clinic_break_hour"
    __table_args__ = (Index("ix_clinic_break_hour_scope", "clinic_id", "day", "branch_id"),)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinic.id", ondelete="CASCADE"))
    day: Mapped[str] = mapped_column(String(9))
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[str] = mapped_column(String(8))
    end_time: Mapped[str] = mapped_column(String(8))
    break_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

# ---- Tenant: clinic copy of the defaults + per-doctor slots ----

class WorkingHour(TenantBase, TimestampedMixin):
    __tablename__ = "working_hours"

    day: Mapped[str] = mapped_column(String(9), index=True)
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[str] = mapped_column(String(8))
    end_time: Mapped[str] = mapped_column(String(8))
    range_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

class BreakHour(TenantBase, TimestampedMixin):
    __tablename__ = "break_hours"

    day: Mapped[str] = mapped_column(String(9), index=True)
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[str] = mapped_column(String(8))
    end_time: Mapped[str] = mapped_column(String(8))
    break_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

doctor_working_hour_services = Table(
    "doctor_working_hour_services", TenantBase.metadata,
    Column("doctor_working_hour_id", ForeignKey("doctor_working_hours.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)

class DoctorWorkingHour(TenantBase, TimestampedMixin):
    __tablename__ = "doctor_working_hours"
    __table_args__ = (
        Index("ix_doctor_working_hours_doctor_day", "doctor_id", "day"),
        Index("ix_doctor_working_hours_branch", "branch_id"),
    )

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctor.id", ondelete="CASCADE"))
    day: Mapped[str] = mapped_column(String(9))
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[str] = mapped_column(String(8))
    end_time: Mapped[str] = mapped_column(String(8))
    session_time: Mapped[str | None] = mapped_column(String(8), nullable=True)  # e.g. 00:30:00
    waterfall: Mapped[bool] = mapped_column(Boolean, default=True)
    patients_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    busy: Mapped[bool] = mapped_column(Boolean, default=False)
    fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    services = relationship(Service, secondary=doctor_working_hour_services, lazy="selectin")

    @property
    def service_ids(self) -> list[int]:
        return [s.id for s in self.services]
