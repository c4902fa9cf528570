"""Tests for the subscription overlap resolver.

Covers:
- Range validation (order, past dates, maximum span)
- End-exclusive overlap: touching ranges never conflict
- Plan-type priority when choosing the reported conflict
- Date-less requests against the furthest-ending active subscription
- Unknown users and inactive subscriptions
- Recording an admitted order and changing subscription status
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest
import pytest_asyncio

from src.clubmeet.core.errors import ConflictError, NotFoundError, ValidationError
from src.clubmeet.subscriptions.resolver import (
    SubscriptionEligibilityService,
    resolve_overlap,
    validate_range,
)
from src.clubmeet.subscriptions.schemas import (
    PlanType,
    Subscription,
    SubscriptionOrder,
    SubscriptionStatus,
)
from tests.fakes import TZ

EMAIL = "asha@example.com"


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def service(subscription_repo, fixed_clock) -> SubscriptionEligibilityService:
    return SubscriptionEligibilityService(subscription_repo, TZ, max_days=365, clock=fixed_clock)


@pytest_asyncio.fixture
async def user(subscription_repo):
    return await subscription_repo.add_user("Asha", EMAIL)


# ── Range Validation ─────────────────────────────────────────────────────────


class TestValidateRange:
    def test_valid_range(self):
        assert validate_range(date(2025, 6, 1), date(2025, 6, 2), date(2025, 6, 1), 365) is None

    def test_start_not_before_end(self):
        reason = validate_range(date(2025, 6, 5), date(2025, 6, 5), date(2025, 6, 1), 365)
        assert reason == "Start date must be before end date."

    def test_past_start(self):
        reason = validate_range(date(2025, 5, 31), date(2025, 6, 2), date(2025, 6, 1), 365)
        assert reason == "Cannot book dates in the past."

    def test_span_over_maximum(self):
        reason = validate_range(date(2025, 6, 1), date(2026, 6, 2), date(2025, 6, 1), 365)
        assert reason == "Subscription duration cannot exceed 365 days."


# ── Overlap Rules ────────────────────────────────────────────────────────────


class TestOverlap:
    @pytest.mark.asyncio
    async def test_no_subscriptions_admits(self, service, user):
        result = await service.can_user_subscribe(
            EMAIL, PlanType.DAILY, date(2025, 6, 6), date(2025, 6, 7)
        )
        assert result.admit is True
        assert result.conflicting_subscription is None

    @pytest.mark.asyncio
    async def test_touching_ranges_admit(self, service, user, subscription_repo):
        """Existing [06-01, 07-01) and candidate [07-01, 07-02) only touch."""
        await subscription_repo.add_subscription(
            user, PlanType.MONTHLY, date(2025, 6, 1), date(2025, 7, 1)
        )
        result = await service.can_user_subscribe(
            EMAIL, PlanType.DAILY, date(2025, 7, 1), date(2025, 7, 2)
        )
        assert result.admit is True

    @pytest.mark.asyncio
    async def test_monthly_over_existing_daily_reports_daily(self, service, user, subscription_repo):
        daily = await subscription_repo.add_subscription(
            user, PlanType.DAILY, date(2025, 6, 6), date(2025, 6, 7)
        )
        result = await service.can_user_subscribe(
            EMAIL, PlanType.MONTHLY, date(2025, 6, 1), date(2025, 7, 1)
        )
        assert result.admit is False
        assert result.conflicting_subscription.id == daily.id
        assert "daily plan for 06/06/25" in result.reason
        assert result.conflicting_dates.start == date(2025, 6, 6)
        assert result.conflicting_dates.end == date(2025, 6, 7)

    @pytest.mark.asyncio
    async def test_daily_inside_existing_monthly_reports_monthly(self, service, user, subscription_repo):
        monthly = await subscription_repo.add_subscription(
            user, PlanType.MONTHLY, date(2025, 6, 1), date(2025, 7, 1)
        )
        result = await service.can_user_subscribe(
            EMAIL, PlanType.DAILY, date(2025, 6, 15), date(2025, 6, 16)
        )
        assert result.admit is False
        assert result.conflicting_subscription.id == monthly.id
        assert "monthly plan from 01/06/25 to 30/06/25" in result.reason

    @pytest.mark.asyncio
    async def test_daily_over_existing_daily(self, service, user, subscription_repo):
        daily = await subscription_repo.add_subscription(
            user, PlanType.DAILY, date(2025, 6, 6), date(2025, 6, 7)
        )
        result = await service.can_user_subscribe(
            EMAIL, PlanType.DAILY, date(2025, 6, 6), date(2025, 6, 7)
        )
        assert result.admit is False
        assert result.conflicting_subscription.id == daily.id
        assert result.reason.startswith("Cannot book daily plan for 06/06/25")

    @pytest.mark.asyncio
    async def test_family_plan_counts_as_long(self, service, user, subscription_repo):
        family = await subscription_repo.add_subscription(
            user, PlanType.MONTHLY_FAMILY, date(2025, 6, 1), date(2025, 7, 1)
        )
        result = await service.can_user_subscribe(
            EMAIL, PlanType.DAILY, date(2025, 6, 10), date(2025, 6, 11)
        )
        assert result.admit is False
        assert result.conflicting_subscription.id == family.id
        assert "monthly family plan" in result.reason

    @pytest.mark.asyncio
    async def test_inactive_subscriptions_are_ignored(self, service, user, subscription_repo):
        await subscription_repo.add_subscription(
            user,
            PlanType.MONTHLY,
            date(2025, 6, 1),
            date(2025, 7, 1),
            status=SubscriptionStatus.INACTIVE,
        )
        result = await service.can_user_subscribe(
            EMAIL, PlanType.DAILY, date(2025, 6, 15), date(2025, 6, 16)
        )
        assert result.admit is True

    @pytest.mark.asyncio
    async def test_invalid_range_rejected_before_lookup(self, service):
        result = await service.can_user_subscribe(
            "nobody@example.com", PlanType.DAILY, date(2025, 5, 20), date(2025, 5, 21)
        )
        assert result.admit is False
        assert result.reason == "Cannot book dates in the past."


def test_monthly_vs_monthly_reports_first_in_order():
    """Neither short-plan rule applies: the first overlapping entry is cited."""
    user_id = uuid.uuid4()
    first = Subscription(
        id=uuid.uuid4(), user_id=user_id, plan_type=PlanType.MONTHLY,
        start_date=date(2025, 6, 1), end_date=date(2025, 7, 1),
        status=SubscriptionStatus.ACTIVE,
    )
    second = Subscription(
        id=uuid.uuid4(), user_id=user_id, plan_type=PlanType.MONTHLY,
        start_date=date(2025, 6, 20), end_date=date(2025, 7, 20),
        status=SubscriptionStatus.ACTIVE,
    )
    result = resolve_overlap([first, second], date(2025, 6, 25), date(2025, 7, 25), PlanType.MONTHLY)
    assert result.admit is False
    assert result.conflicting_subscription.id == first.id


# ── Date-less Requests ───────────────────────────────────────────────────────


class TestWithoutDates:
    @pytest.mark.asyncio
    async def test_unknown_user_admits(self, service):
        result = await service.can_user_subscribe("new@example.com")
        assert result.admit is True
        assert result.reason == "User not found, can create new subscription"

    @pytest.mark.asyncio
    async def test_reports_furthest_ending_subscription(self, service, user, subscription_repo):
        await subscription_repo.add_subscription(
            user, PlanType.DAILY, date(2025, 6, 3), date(2025, 6, 4)
        )
        monthly = await subscription_repo.add_subscription(
            user, PlanType.MONTHLY, date(2025, 6, 1), date(2025, 7, 1)
        )
        result = await service.can_user_subscribe(EMAIL, PlanType.DAILY)
        assert result.admit is False
        assert result.conflicting_subscription.id == monthly.id
        assert "until 30/06/25" in result.reason

    @pytest.mark.asyncio
    async def test_expired_subscription_admits(self, service, user, subscription_repo):
        """A range ending today has no coverage left (end-exclusive)."""
        await subscription_repo.add_subscription(
            user, PlanType.MONTHLY, date(2025, 5, 1), date(2025, 6, 1)
        )
        result = await service.can_user_subscribe(EMAIL)
        assert result.admit is True

    @pytest.mark.asyncio
    async def test_single_date_falls_back_to_dateless(self, service, user, subscription_repo):
        await subscription_repo.add_subscription(
            user, PlanType.MONTHLY, date(2025, 6, 1), date(2025, 7, 1)
        )
        result = await service.can_user_subscribe(EMAIL, PlanType.DAILY, start_date=date(2025, 8, 1))
        assert result.admit is False


# ── Recording ────────────────────────────────────────────────────────────────


def _order(start: date, end: date, plan: PlanType = PlanType.DAILY, **kwargs) -> SubscriptionOrder:
    return SubscriptionOrder(
        email=kwargs.pop("email", EMAIL),
        first_name=kwargs.pop("first_name", "Asha"),
        plan_type=plan,
        start_date=start,
        end_date=end,
        **kwargs,
    )


class TestRecordSubscription:
    @pytest.mark.asyncio
    async def test_registers_unknown_user(self, service, subscription_repo):
        sub = await service.record_subscription(
            _order(date(2025, 6, 6), date(2025, 6, 7), email="new@example.com", first_name="Neha")
        )

        user = await subscription_repo.get_user_by_email("new@example.com")
        assert user.first_name == "Neha"
        assert sub.user_id == user.id
        assert sub.status == SubscriptionStatus.ACTIVE
        assert sub.duration == 1

    @pytest.mark.asyncio
    async def test_reuses_existing_user(self, service, user, subscription_repo):
        sub = await service.record_subscription(
            _order(date(2025, 6, 1), date(2025, 7, 1), PlanType.MONTHLY, order_id="order_1")
        )

        assert sub.user_id == user.id
        assert sub.order_id == "order_1"
        assert len(subscription_repo.users) == 1

    @pytest.mark.asyncio
    async def test_overlap_raises_conflict_with_existing(self, service, user, subscription_repo):
        existing = await subscription_repo.add_subscription(
            user, PlanType.MONTHLY, date(2025, 6, 1), date(2025, 7, 1)
        )

        with pytest.raises(ConflictError) as exc_info:
            await service.record_subscription(_order(date(2025, 6, 10), date(2025, 6, 11)))

        assert exc_info.value.entity.id == existing.id
        assert len(subscription_repo.subscriptions) == 1

    @pytest.mark.asyncio
    async def test_past_range_is_validation_error(self, service, subscription_repo):
        with pytest.raises(ValidationError):
            await service.record_subscription(_order(date(2025, 5, 20), date(2025, 5, 21)))
        assert subscription_repo.subscriptions == []


class TestSetStatus:
    @pytest.mark.asyncio
    async def test_deactivate(self, service, user, subscription_repo):
        sub = await subscription_repo.add_subscription(
            user, PlanType.DAILY, date(2025, 6, 6), date(2025, 6, 7)
        )

        updated = await service.set_status(sub.id, SubscriptionStatus.INACTIVE)

        assert updated.status == SubscriptionStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_missing_subscription(self, service):
        with pytest.raises(NotFoundError):
            await service.set_status(uuid.uuid4(), SubscriptionStatus.ACTIVE)
