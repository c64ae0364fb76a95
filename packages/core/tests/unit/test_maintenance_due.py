"""Tests for the MaintenanceDue value."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from assetdesk.domain.models.maintenance_due import DueKind, MaintenanceDue


def test_scheduled_requires_due_at() -> None:
    with pytest.raises(ValidationError):
        MaintenanceDue(kind=DueKind.Scheduled)


def test_due_at_rejected_for_other_kinds() -> None:
    with pytest.raises(ValidationError):
        MaintenanceDue(kind=DueKind.Overdue, due_at=datetime(2024, 1, 1))


def test_sort_key_orders_overdue_scheduled_not_applicable() -> None:
    values = [
        MaintenanceDue.not_applicable(),
        MaintenanceDue.scheduled_at(datetime(2025, 1, 1)),
        MaintenanceDue.overdue(),
        MaintenanceDue.scheduled_at(datetime(2024, 6, 1)),
    ]

    ordered = sorted(values, key=lambda v: v.sort_key())

    assert [v.to_json_value() for v in ordered] == [
        0,
        "2024-06-01T00:00:00",
        "2025-01-01T00:00:00",
        None,
    ]


def test_frozen() -> None:
    due = MaintenanceDue.overdue()
    with pytest.raises(ValidationError):
        due.kind = DueKind.NotApplicable
