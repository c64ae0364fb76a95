"""MaintenanceDue: derived routine-maintenance signal for an asset."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class DueKind(str, Enum):
    """Kind of maintenance-due signal."""

    Overdue = "overdue"
    """Asset needs attention now (it is reporting issues)."""

    Scheduled = "scheduled"
    """Next routine maintenance falls on `due_at`."""

    NotApplicable = "not_applicable"
    """Asset is idle or lacks the data to schedule maintenance."""


class MaintenanceDue(BaseModel):
    """Tagged maintenance-due value.

    Serialized for clients as `0` (overdue), an ISO 8601 timestamp
    (scheduled) or `null` (not applicable).

    Example:
        ```python
        due = MaintenanceDue.scheduled_at(datetime(2024, 7, 15))
        due.to_json_value()  # "2024-07-15T00:00:00"
        MaintenanceDue.overdue().to_json_value()  # 0
        ```
    """

    kind: DueKind
    due_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_due_at(self) -> "MaintenanceDue":
        if self.kind == DueKind.Scheduled and self.due_at is None:
            raise ValueError("scheduled maintenance requires due_at")
        if self.kind != DueKind.Scheduled and self.due_at is not None:
            raise ValueError("due_at is only valid for scheduled maintenance")
        return self

    @classmethod
    def overdue(cls) -> "MaintenanceDue":
        return cls(kind=DueKind.Overdue)

    @classmethod
    def scheduled_at(cls, due_at: datetime) -> "MaintenanceDue":
        return cls(kind=DueKind.Scheduled, due_at=due_at)

    @classmethod
    def not_applicable(cls) -> "MaintenanceDue":
        return cls(kind=DueKind.NotApplicable)

    def to_json_value(self) -> Any:
        if self.kind == DueKind.Overdue:
            return 0
        if self.kind == DueKind.Scheduled:
            return self.due_at.isoformat()  # type: ignore[union-attr]
        return None

    def sort_key(self) -> tuple[int, datetime]:
        """Ascending key: overdue first, then by due date, not applicable last."""
        if self.kind == DueKind.Overdue:
            return (0, datetime.min)
        if self.kind == DueKind.Scheduled:
            return (1, self.due_at)  # type: ignore[return-value]
        return (2, datetime.max)
