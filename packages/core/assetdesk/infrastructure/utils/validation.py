"""Input validation utilities for identifiers and request payloads."""

import re
import time
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from assetdesk.domain.models.system_error import ValidationError

# Mongo query operators must never reach a filter through user input
OPERATOR_KEY_PATTERN = re.compile(r"^\$")


def new_document_id() -> str:
    """Generate a new document identifier (24-char hex ObjectId string)."""
    return str(ObjectId())


def is_valid_object_id(value: Any) -> bool:
    """Return True if value is a well-formed ObjectId string."""
    if not isinstance(value, str):
        return False
    try:
        ObjectId(value)
    except (InvalidId, TypeError):
        return False
    return True


def validate_object_id(value: Any, field: str = "_id") -> str:
    """Validate an identifier and return it.

    Args:
        value: Candidate identifier.
        field: Field name reported in the error.

    Raises:
        ValidationError: If value is missing or not a valid ObjectId.
    """
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if not is_valid_object_id(value):
        raise ValidationError(f"Invalid {field}", field=field)
    return value


def normalize_datetime(value: datetime | None) -> datetime | None:
    """Convert a timezone-aware datetime to naive UTC; naive values pass through.

    Stored timestamps are naive UTC, so client-supplied dates are normalized
    before they are compared with them.
    """
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def generate_reference(prefix: str, now_ms: int | None = None) -> str:
    """Human-readable reference built from a prefix and a millisecond timestamp.

    >>> generate_reference("MT", 1718000000000)
    'MT-1718000000000'
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{prefix}-{now_ms}"


def detect_operator_injection(payload: Any, max_depth: int = 5) -> bool:
    """Detect Mongo operator keys (`$where`, `$ne`...) anywhere in a payload."""
    if max_depth < 0:
        return True
    if isinstance(payload, Mapping):
        for key, value in payload.items():
            if isinstance(key, str) and OPERATOR_KEY_PATTERN.match(key):
                return True
            if detect_operator_injection(value, max_depth - 1):
                return True
    elif isinstance(payload, list):
        return any(detect_operator_injection(item, max_depth - 1) for item in payload)
    return False


def require_fields(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Ensure every field is present and non-empty.

    Raises:
        ValidationError: "Missing required fields" naming the first absent field.
    """
    if detect_operator_injection(payload):
        raise ValidationError("Payload contains forbidden operator keys")
    for field in fields:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError("Missing required fields", field=field)
