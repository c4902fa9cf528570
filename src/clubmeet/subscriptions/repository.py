"""Subscription repository -- async CRUD for users and subscriptions.

Uses the session_factory callable pattern: every method opens its own
session through ``async for session in self._session_factory()``.
Subscription queries take a list of typed criteria from filters.py.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable, Iterable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.clubmeet.core.errors import ConflictError
from src.clubmeet.subscriptions.filters import SubscriptionCriterion, to_clause
from src.clubmeet.subscriptions.models import SubscriptionModel, UserModel
from src.clubmeet.subscriptions.schemas import (
    PaymentStatus,
    PlanType,
    Subscription,
    SubscriptionCreate,
    SubscriptionStatus,
    User,
    UserCreate,
)

logger = structlog.get_logger(__name__)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _model_to_user(model: UserModel) -> User:
    return User(
        id=model.id,
        first_name=model.first_name,
        last_name=model.last_name or "",
        email=model.email,
        phone=model.phone,
        source=model.source,
        reference_name=model.reference_name,
        role=model.role,
        created_at=model.created_at,
    )


def _model_to_subscription(model: SubscriptionModel) -> Subscription:
    return Subscription(
        id=model.id,
        user_id=model.user_id,
        plan_type=PlanType(model.plan_type),
        start_date=model.start_date,
        end_date=model.end_date,
        status=SubscriptionStatus(model.status),
        payment_status=PaymentStatus(model.payment_status),
        price=model.price,
        order_id=model.order_id,
        duration=model.duration,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


# ── Repository ──────────────────────────────────────────────────────────────


class SubscriptionRepository:
    """Async access to User and Subscription rows.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    # ── Users ────────────────────────────────────────────────────────────

    async def create_user(self, data: UserCreate) -> User:
        """Insert a user.

        Raises:
            ConflictError: If the email is already registered.
        """
        async for session in self._session_factory():
            model = UserModel(**data.model_dump())
            session.add(model)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(f"User with email {data.email} already exists") from exc
            await session.refresh(model)
            return _model_to_user(model)

    async def get_user_by_email(self, email: str) -> User | None:
        async for session in self._session_factory():
            stmt = select(UserModel).where(UserModel.email == email)
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            return _model_to_user(model) if model is not None else None

    async def get_users(self, user_ids: Iterable[uuid.UUID]) -> list[User]:
        """Fetch the users whose ids are given; unknown ids are simply absent."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        async for session in self._session_factory():
            stmt = select(UserModel).where(UserModel.id.in_(ids))
            result = await session.execute(stmt)
            return [_model_to_user(m) for m in result.scalars().all()]

    # ── Subscriptions ────────────────────────────────────────────────────

    async def create_subscription(self, data: SubscriptionCreate) -> Subscription:
        """Insert a subscription.

        Overlap rules are not enforced here; callers run the eligibility
        check first.

        Raises:
            ConflictError: If the order id is already recorded.
        """
        async for session in self._session_factory():
            model = SubscriptionModel(
                user_id=data.user_id,
                plan_type=data.plan_type.value,
                start_date=data.start_date,
                end_date=data.end_date,
                status=data.status.value,
                payment_status=data.payment_status.value,
                price=data.price,
                order_id=data.order_id,
                duration=data.duration,
            )
            session.add(model)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(
                    f"Subscription for order {data.order_id} already exists"
                ) from exc
            await session.refresh(model)
            logger.info(
                "subscriptions.created",
                subscription_id=str(model.id),
                user_id=str(model.user_id),
                plan_type=model.plan_type,
            )
            return _model_to_subscription(model)

    async def list_subscriptions(
        self,
        criteria: list[SubscriptionCriterion],
        latest_end_first: bool = False,
    ) -> list[Subscription]:
        """List subscriptions matching every criterion.

        Args:
            criteria: Typed filters, ANDed together.
            latest_end_first: Order by end_date descending instead of
                insertion order (start_date, created_at).

        Returns:
            Matching subscriptions.
        """
        async for session in self._session_factory():
            stmt = select(SubscriptionModel)
            for criterion in criteria:
                stmt = stmt.where(to_clause(criterion))
            if latest_end_first:
                stmt = stmt.order_by(SubscriptionModel.end_date.desc())
            else:
                stmt = stmt.order_by(
                    SubscriptionModel.start_date, SubscriptionModel.created_at
                )
            result = await session.execute(stmt)
            return [_model_to_subscription(m) for m in result.scalars().all()]

    async def update_status(
        self, subscription_id: uuid.UUID, status: SubscriptionStatus
    ) -> Subscription | None:
        async for session in self._session_factory():
            model = await session.get(SubscriptionModel, subscription_id)
            if model is None:
                return None
            model.status = status.value
            await session.commit()
            await session.refresh(model)
            return _model_to_subscription(model)
