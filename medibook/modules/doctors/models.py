from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Numeric
from medibook.core.base import TenantBase, TimestampedMixin

class Doctor(TenantBase, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(160), index=True)
    specialty: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    patients_count: Mapped[int] = mapped_column(Integer, default=0)

class Service(TenantBase, TimestampedMixin):
    __tablename__ = "services"

    name: Mapped[str] = mapped_column(String(160))
    fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
