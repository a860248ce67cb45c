import datetime as dt
from decimal import Decimal
from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, Numeric, ForeignKey, Date, DateTime, Index, text
from medibook.core.base import TenantBase, TimestampedMixin

class ReservationStatus(str, Enum):
    PENDING = "pending"
    TAKEN = "taken"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"

# statuses that hold a waterfall working hour
LIVE_STATUSES = (ReservationStatus.SCHEDULED.value, ReservationStatus.TAKEN.value)

class Reservation(TenantBase, TimestampedMixin):
    __tablename__ = "reservations"

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctor.id", ondelete="CASCADE"), index=True)
    patient_id: Mapped[int | None] = mapped_column(nullable=True)
    doctor_working_hour_id: Mapped[int] = mapped_column(ForeignKey("doctor_working_hours.id", ondelete="CASCADE"), index=True)
    date: Mapped[dt.date] = mapped_column(Date)
    date_time: Mapped[dt.datetime] = mapped_column(DateTime)
    status: Mapped[str] = mapped_column(String(16), default=ReservationStatus.PENDING.value)
    fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    paid: Mapped[bool] = mapped_column(Boolean, default=False)
    medical_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # copied from the working hour at admission so the live-slot index can see it
    waterfall: Mapped[bool] = mapped_column(Boolean, default=False)

_live = text("waterfall AND status IN ('scheduled', 'taken')")

# at most one scheduled/taken reservation per waterfall working hour
waterfall_live_index = Index(
    "uq_reservations_waterfall_live",
    Reservation.__table__.c.doctor_working_hour_id,
    unique=True,
    postgresql_where=_live,
    sqlite_where=_live,
)
