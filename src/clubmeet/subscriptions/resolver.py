"""Subscription overlap resolver -- may this user book this range?

The decision itself is pure (``validate_range``, ``resolve_overlap``,
``resolve_without_dates``) and works on already-loaded subscriptions so it
can be exercised without storage. SubscriptionEligibilityService loads the
user's active subscriptions and feeds them through it, and records new
subscriptions only after the same check admits them.

Ranges are ``[start, end)``: two ranges that only touch never overlap,
whatever the plan types. When an overlap exists the reported conflict is
chosen by plan type in this order:

1. existing daily plan vs a candidate monthly plan -> the daily plan
2. existing monthly plan vs a candidate daily plan -> the monthly plan
3. existing daily plan vs a candidate daily plan   -> the existing daily plan
4. anything else -> the first overlapping subscription in repository order
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import date, datetime, timedelta

import structlog

from src.clubmeet.core.errors import ConflictError, NotFoundError, ValidationError
from src.clubmeet.core.timeutil import civil_today, format_ddmmyy
from src.clubmeet.subscriptions.filters import ByStatus, ByUser, EndsAfter
from src.clubmeet.subscriptions.repository import SubscriptionRepository
from src.clubmeet.subscriptions.schemas import (
    EligibilityResult,
    PlanType,
    Subscription,
    SubscriptionCreate,
    SubscriptionOrder,
    SubscriptionStatus,
    UserCreate,
)

logger = structlog.get_logger(__name__)

_PLAN_LABELS = {
    PlanType.DAILY: "daily",
    PlanType.MONTHLY: "monthly",
    PlanType.MONTHLY_FAMILY: "monthly family",
}


def _describe_range(start: date, end: date) -> str:
    """Human-readable covered days of ``[start, end)``, e.g. ``06/06/25``."""
    last_day = end - timedelta(days=1)
    if last_day <= start:
        return format_ddmmyy(start)
    return f"{format_ddmmyy(start)} to {format_ddmmyy(last_day)}"


def validate_range(start: date, end: date, today: date, max_days: int) -> str | None:
    """Return the rejection reason for a malformed range, or None if valid."""
    if start >= end:
        return "Start date must be before end date."
    if start < today:
        return "Cannot book dates in the past."
    if (end - start).days > max_days:
        return f"Subscription duration cannot exceed {max_days} days."
    return None


def resolve_overlap(
    existing: list[Subscription],
    start: date,
    end: date,
    plan_type: PlanType | None,
) -> EligibilityResult:
    """Decide a dated booking against a user's active subscriptions.

    Args:
        existing: Active subscriptions of the user, in repository order.
        start: Candidate range start (inclusive).
        end: Candidate range end (exclusive).
        plan_type: Candidate plan, if known.

    Returns:
        Admit when nothing overlaps, otherwise a rejection citing one
        conflicting subscription.
    """
    overlapping = [s for s in existing if s.overlaps(start, end)]
    if not overlapping:
        return EligibilityResult.admitted()

    existing_short = next((s for s in overlapping if s.plan_type.is_short), None)
    existing_long = next((s for s in overlapping if not s.plan_type.is_short), None)
    candidate = _describe_range(start, end)

    if plan_type is not None and not plan_type.is_short and existing_short is not None:
        return EligibilityResult.rejected(
            f"Cannot purchase a {_PLAN_LABELS[plan_type]} plan that overlaps with your "
            f"existing daily plan for {_describe_range(existing_short.start_date, existing_short.end_date)}. "
            "Please select non-overlapping dates.",
            existing_short,
        )

    if plan_type is not None and plan_type.is_short and existing_long is not None:
        return EligibilityResult.rejected(
            f"Cannot purchase a daily plan that overlaps with your existing "
            f"{_PLAN_LABELS[existing_long.plan_type]} plan from "
            f"{_describe_range(existing_long.start_date, existing_long.end_date)}. "
            "Please select a date outside your monthly plan.",
            existing_long,
        )

    if plan_type is not None and plan_type.is_short and existing_short is not None:
        return EligibilityResult.rejected(
            f"Cannot book daily plan for {candidate} because you already have a booking "
            f"for {_describe_range(existing_short.start_date, existing_short.end_date)}. "
            "Please select a different date.",
            existing_short,
        )

    first = overlapping[0]
    return EligibilityResult.rejected(
        f"Cannot book for {candidate} because you already have a subscription for "
        f"{_describe_range(first.start_date, first.end_date)}. "
        "Please select non-overlapping dates.",
        first,
    )


def resolve_without_dates(latest: Subscription | None) -> EligibilityResult:
    """Decide a date-less request from the user's furthest-ending active subscription."""
    if latest is None:
        return EligibilityResult.admitted()
    until = format_ddmmyy(latest.end_date - timedelta(days=1))
    label = _PLAN_LABELS[latest.plan_type]
    return EligibilityResult.rejected(
        f"You already have an active {label} subscription until {until}. "
        "Please wait for it to expire or check non-overlapping dates.",
        latest,
    )


class SubscriptionEligibilityService:
    """Repository-backed entry point for booking eligibility checks.

    Args:
        repository: SubscriptionRepository (or a compatible test double).
        tz_name: Civil timezone used to decide "today".
        max_days: Longest bookable span in days.
        clock: Returns the current aware instant; defaults to the wall clock.
    """

    def __init__(
        self,
        repository: SubscriptionRepository,
        tz_name: str,
        max_days: int = 365,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._tz_name = tz_name
        self._max_days = max_days
        self._clock = clock

    def _today(self) -> date:
        return civil_today(self._tz_name, self._clock() if self._clock else None)

    async def can_user_subscribe(
        self,
        email: str,
        plan_type: PlanType | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> EligibilityResult:
        """Check whether ``email`` may book a new subscription.

        With both dates, validates the range and runs the overlap rules.
        Without a full pair of dates, rejects while any active subscription
        still has coverage after today.

        Returns:
            EligibilityResult. Storage failures propagate.
        """
        today = self._today()

        if start_date is not None and end_date is not None:
            invalid = validate_range(start_date, end_date, today, self._max_days)
            if invalid is not None:
                logger.info("subscriptions.eligibility_invalid", email=email, reason=invalid)
                return EligibilityResult.rejected(invalid)

        user = await self._repository.get_user_by_email(email)
        if user is None:
            return EligibilityResult.admitted("User not found, can create new subscription")

        base = [ByUser(user_id=user.id), ByStatus(status=SubscriptionStatus.ACTIVE)]

        if start_date is not None and end_date is not None:
            active = await self._repository.list_subscriptions(base)
            result = resolve_overlap(active, start_date, end_date, plan_type)
        else:
            active = await self._repository.list_subscriptions(
                base + [EndsAfter(day=today)], latest_end_first=True
            )
            result = resolve_without_dates(active[0] if active else None)

        logger.info(
            "subscriptions.eligibility_checked",
            email=email,
            plan_type=plan_type.value if plan_type else None,
            admit=result.admit,
            conflicting_id=(
                str(result.conflicting_subscription.id)
                if result.conflicting_subscription
                else None
            ),
        )
        return result

    async def record_subscription(self, order: SubscriptionOrder) -> Subscription:
        """Store ``order`` after it passes the eligibility check.

        The user is looked up by e-mail and registered when unknown.

        Raises:
            ValidationError: The range itself is not bookable.
            ConflictError: The range overlaps an active subscription
                (``entity`` holds it) or the order id is already used.
        """
        result = await self.can_user_subscribe(
            order.email, order.plan_type, order.start_date, order.end_date
        )
        if not result.admit:
            if result.conflicting_subscription is None:
                raise ValidationError(result.reason or "Subscription range rejected")
            raise ConflictError(result.reason or "", entity=result.conflicting_subscription)

        user = await self._repository.get_user_by_email(order.email)
        if user is None:
            user = await self._repository.create_user(
                UserCreate(
                    first_name=order.first_name,
                    last_name=order.last_name,
                    email=order.email,
                    phone=order.phone,
                )
            )

        subscription = await self._repository.create_subscription(
            SubscriptionCreate(
                user_id=user.id,
                plan_type=order.plan_type,
                start_date=order.start_date,
                end_date=order.end_date,
                payment_status=order.payment_status,
                price=order.price,
                order_id=order.order_id,
                duration=(order.end_date - order.start_date).days,
            )
        )
        logger.info(
            "subscriptions.recorded",
            subscription_id=str(subscription.id),
            user_id=str(user.id),
            plan_type=order.plan_type.value,
        )
        return subscription

    async def set_status(
        self, subscription_id: uuid.UUID, status: SubscriptionStatus
    ) -> Subscription:
        """Activate or deactivate a subscription.

        Raises:
            NotFoundError: If the subscription does not exist.
        """
        updated = await self._repository.update_status(subscription_id, status)
        if updated is None:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        logger.info(
            "subscriptions.status_changed",
            subscription_id=str(subscription_id),
            status=status.value,
        )
        return updated
