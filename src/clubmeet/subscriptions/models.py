"""Subscription persistence models -- users and their subscriptions.

Dates are civil dates in the service timezone. Subscription ranges are
stored end-exclusive: a daily booking for 2025-06-06 is
``start_date=2025-06-06, end_date=2025-06-07``.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.clubmeet.core.database import Base


class UserModel(Base):
    """Registered user. Email is unique when present."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(200), nullable=False)
    last_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="user")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


class SubscriptionModel(Base):
    """A user's paid coverage of the range ``[start_date, end_date)``."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_subscriptions_range"),
        Index("ix_subscriptions_user_status", "user_id", "status"),
        Index("ix_subscriptions_range", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    plan_type: Mapped[str] = mapped_column(String(32), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order_id: Mapped[str | None] = mapped_column(String(200), unique=True, nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
