"""Subscription endpoints: public eligibility check plus admin booking and queries."""

from __future__ import annotations

import uuid
from typing import Any

import pydantic
from fastapi import APIRouter, Depends
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from src.clubmeet.api.deps import (
    get_eligibility_service,
    get_subscription_repository,
    require_admin,
)
from src.clubmeet.subscriptions.filters import parse_criteria
from src.clubmeet.subscriptions.schemas import (
    EligibilityRequest,
    EligibilityResult,
    StatusUpdate,
    Subscription,
    SubscriptionOrder,
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


class SubscriptionQuery(BaseModel):
    """Tagged filter dicts, e.g. ``{"kind": "active_on", "day": "2025-06-06"}``."""

    criteria: list[dict[str, Any]] = Field(default_factory=list)
    latest_end_first: bool = False


@router.post("/eligibility", response_model=EligibilityResult)
async def check_eligibility(
    body: EligibilityRequest,
    service: Any = Depends(get_eligibility_service),
) -> EligibilityResult:
    """Decide whether the user may book the given range and plan.

    Always answers 200; a rejection is carried in ``admit=false`` with a reason.
    """
    return await service.can_user_subscribe(
        email=body.email,
        plan_type=body.plan_type,
        start_date=body.start_date,
        end_date=body.end_date,
    )


@router.post(
    "/query",
    response_model=list[Subscription],
    dependencies=[Depends(require_admin)],
)
async def query_subscriptions(
    body: SubscriptionQuery,
    repository: Any = Depends(get_subscription_repository),
) -> list[Subscription]:
    """List subscriptions matching every criterion. 422 on an unknown or malformed filter."""
    try:
        criteria = parse_criteria(body.criteria)
    except pydantic.ValidationError as exc:
        raise RequestValidationError(
            exc.errors(include_url=False, include_context=False)
        ) from exc
    return await repository.list_subscriptions(criteria, latest_end_first=body.latest_end_first)


@router.post(
    "",
    response_model=Subscription,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_subscription(
    body: SubscriptionOrder,
    service: Any = Depends(get_eligibility_service),
) -> Subscription:
    """Record a subscription. 409 with the conflicting subscription on overlap."""
    return await service.record_subscription(body)


@router.patch(
    "/{subscription_id}/status",
    response_model=Subscription,
    dependencies=[Depends(require_admin)],
)
async def update_subscription_status(
    subscription_id: uuid.UUID,
    body: StatusUpdate,
    service: Any = Depends(get_eligibility_service),
) -> Subscription:
    return await service.set_status(subscription_id, body.status)
