import uuid
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import String, Boolean, Integer, Numeric, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from .db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    # customer-facing payment reference, never the primary key
    order_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)

    plan: Mapped[str] = mapped_column(String(20), nullable=False)
    wordpress: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    # money => NUMERIC, not FLOAT. Stored once, never re-derived from pricing.
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        index=True,
        nullable=False,
    )
