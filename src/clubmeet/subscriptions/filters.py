"""Typed filter criteria for subscription queries.

Each criterion is a tagged Pydantic model (``kind`` is the tag), so raw
filter dicts from outside the process are validated once at the boundary
with ``parse_criteria`` and everything past that point works with typed
values. Criteria are ANDed together.

``to_clause`` turns a criterion into the SQLAlchemy WHERE clause used by
SubscriptionRepository.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator
from sqlalchemy import ColumnElement

from src.clubmeet.subscriptions.models import SubscriptionModel
from src.clubmeet.subscriptions.schemas import PlanType, SubscriptionStatus


class ByUser(BaseModel):
    kind: Literal["user"] = "user"
    user_id: uuid.UUID


class ByStatus(BaseModel):
    kind: Literal["status"] = "status"
    status: SubscriptionStatus


class ByPlanType(BaseModel):
    kind: Literal["plan_type"] = "plan_type"
    plan_types: list[PlanType] = Field(min_length=1)


class ActiveOn(BaseModel):
    """Range covers ``day`` (``start_date <= day < end_date``)."""

    kind: Literal["active_on"] = "active_on"
    day: date


class EndsAfter(BaseModel):
    """Range still has coverage after ``day`` (``end_date > day``)."""

    kind: Literal["ends_after"] = "ends_after"
    day: date


class OverlapsRange(BaseModel):
    """Range shares at least one day with ``[start, end)``."""

    kind: Literal["overlaps"] = "overlaps"
    start: date
    end: date

    @model_validator(mode="after")
    def _check_range(self) -> OverlapsRange:
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


SubscriptionCriterion = Annotated[
    Union[ByUser, ByStatus, ByPlanType, ActiveOn, EndsAfter, OverlapsRange],
    Field(discriminator="kind"),
]

_criteria_adapter = TypeAdapter(list[SubscriptionCriterion])


def parse_criteria(raw: list[dict]) -> list[SubscriptionCriterion]:
    """Validate untyped filter dicts into criteria.

    Raises:
        pydantic.ValidationError: On an unknown ``kind`` or bad field values.
    """
    return _criteria_adapter.validate_python(raw)


def to_clause(criterion: SubscriptionCriterion) -> ColumnElement[bool]:
    """Build the SQL WHERE clause for one criterion."""
    if isinstance(criterion, ByUser):
        return SubscriptionModel.user_id == criterion.user_id
    if isinstance(criterion, ByStatus):
        return SubscriptionModel.status == criterion.status.value
    if isinstance(criterion, ByPlanType):
        return SubscriptionModel.plan_type.in_([p.value for p in criterion.plan_types])
    if isinstance(criterion, ActiveOn):
        return (SubscriptionModel.start_date <= criterion.day) & (
            SubscriptionModel.end_date > criterion.day
        )
    if isinstance(criterion, EndsAfter):
        return SubscriptionModel.end_date > criterion.day
    if isinstance(criterion, OverlapsRange):
        return (SubscriptionModel.start_date < criterion.end) & (
            SubscriptionModel.end_date > criterion.start
        )
    raise TypeError(f"Unsupported criterion: {criterion!r}")

