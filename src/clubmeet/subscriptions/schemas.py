"""Pydantic v2 schemas for users, subscriptions and eligibility decisions."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, model_validator


# ── Enums ────────────────────────────────────────────────────────────────────


class PlanType(str, Enum):
    """Subscription plan. Daily covers one civil day; the others a month."""

    DAILY = "daily"
    MONTHLY = "monthly"
    MONTHLY_FAMILY = "monthlyFamily"

    @property
    def is_short(self) -> bool:
        return self is PlanType.DAILY


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ── Users ────────────────────────────────────────────────────────────────────


class UserCreate(BaseModel):
    """Data for registering a user."""

    first_name: str
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    source: str | None = None
    reference_name: str | None = None
    role: str = "user"


class User(BaseModel):
    """A registered user."""

    id: uuid.UUID
    first_name: str
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    source: str | None = None
    reference_name: str | None = None
    role: str = "user"
    created_at: datetime | None = None

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        if full:
            return full
        return (self.email or "").split("@")[0]


# ── Subscriptions ────────────────────────────────────────────────────────────


class SubscriptionCreate(BaseModel):
    """Data for recording a subscription; the range is ``[start_date, end_date)``."""

    user_id: uuid.UUID
    plan_type: PlanType
    start_date: date
    end_date: date
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    payment_status: PaymentStatus = PaymentStatus.PENDING
    price: int = 0
    order_id: str | None = None
    duration: int | None = None

    @model_validator(mode="after")
    def _check_range(self) -> SubscriptionCreate:
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class SubscriptionOrder(BaseModel):
    """A booking identified by e-mail; the user is registered on first order."""

    email: str
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    plan_type: PlanType
    start_date: date
    end_date: date
    payment_status: PaymentStatus = PaymentStatus.PENDING
    price: int = 0
    order_id: str | None = None


class StatusUpdate(BaseModel):
    status: SubscriptionStatus


class Subscription(BaseModel):
    """A stored subscription."""

    id: uuid.UUID
    user_id: uuid.UUID
    plan_type: PlanType
    start_date: date
    end_date: date
    status: SubscriptionStatus
    payment_status: PaymentStatus = PaymentStatus.PENDING
    price: int = 0
    order_id: str | None = None
    duration: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def overlaps(self, start: date, end: date) -> bool:
        """True if ``[start, end)`` shares at least one day with this range."""
        return start < self.end_date and self.start_date < end


# ── Eligibility ──────────────────────────────────────────────────────────────


class ConflictingDates(BaseModel):
    start: date
    end: date


class EligibilityRequest(BaseModel):
    """Input to the eligibility check. Dates are optional as a pair."""

    email: str
    plan_type: PlanType | None = None
    start_date: date | None = None
    end_date: date | None = None


class EligibilityResult(BaseModel):
    """Admit/reject decision for a booking request."""

    admit: bool
    reason: str | None = None
    conflicting_subscription: Subscription | None = None
    conflicting_dates: ConflictingDates | None = None

    @classmethod
    def admitted(cls, reason: str | None = None) -> EligibilityResult:
        return cls(admit=True, reason=reason)

    @classmethod
    def rejected(
        cls, reason: str, conflicting: Subscription | None = None
    ) -> EligibilityResult:
        return cls(
            admit=False,
            reason=reason,
            conflicting_subscription=conflicting,
            conflicting_dates=(
                ConflictingDates(start=conflicting.start_date, end=conflicting.end_date)
                if conflicting is not None
                else None
            ),
        )
