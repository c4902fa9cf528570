"""Tests for typed subscription filter criteria.

Covers:
- Parsing tagged dicts into criteria at the boundary
- Rejection of unknown kinds and malformed ranges
- SQL clause construction for every criterion kind
"""

from __future__ import annotations

import uuid
from datetime import date

import pydantic
import pytest

from src.clubmeet.subscriptions.filters import (
    ActiveOn,
    ByPlanType,
    ByStatus,
    ByUser,
    EndsAfter,
    OverlapsRange,
    parse_criteria,
    to_clause,
)
from src.clubmeet.subscriptions.schemas import PlanType, SubscriptionStatus


# ── Parsing ──────────────────────────────────────────────────────────────────


def test_parse_criteria_builds_typed_values():
    user_id = uuid.uuid4()
    criteria = parse_criteria(
        [
            {"kind": "user", "user_id": str(user_id)},
            {"kind": "status", "status": "active"},
            {"kind": "plan_type", "plan_types": ["daily", "monthlyFamily"]},
            {"kind": "active_on", "day": "2025-06-06"},
        ]
    )
    assert isinstance(criteria[0], ByUser) and criteria[0].user_id == user_id
    assert isinstance(criteria[1], ByStatus)
    assert criteria[2].plan_types == [PlanType.DAILY, PlanType.MONTHLY_FAMILY]
    assert criteria[3] == ActiveOn(day=date(2025, 6, 6))


def test_parse_criteria_rejects_unknown_kind():
    with pytest.raises(pydantic.ValidationError):
        parse_criteria([{"kind": "price_above", "value": 10}])


def test_parse_criteria_rejects_empty_range():
    with pytest.raises(pydantic.ValidationError):
        parse_criteria([{"kind": "overlaps", "start": "2025-06-06", "end": "2025-06-06"}])


def test_parse_criteria_rejects_empty_plan_list():
    with pytest.raises(pydantic.ValidationError):
        parse_criteria([{"kind": "plan_type", "plan_types": []}])


# ── SQL Clauses ──────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "criterion, column",
    [
        (ByUser(user_id=uuid.uuid4()), "user_id"),
        (ByStatus(status=SubscriptionStatus.ACTIVE), "status"),
        (ByPlanType(plan_types=[PlanType.DAILY]), "plan_type"),
        (ActiveOn(day=date(2025, 6, 6)), "start_date"),
        (EndsAfter(day=date(2025, 6, 6)), "end_date"),
        (OverlapsRange(start=date(2025, 6, 1), end=date(2025, 6, 2)), "end_date"),
    ],
)
def test_to_clause_references_expected_column(criterion, column):
    assert column in str(to_clause(criterion))
