"""
Parse-once validation for request values.
Raw strings are checked here a single time and come back as typed values
(validated date, normalized UUID string, Decimal hours) or None.
"""
import re
from datetime import date
from decimal import Decimal
from typing import Optional

# xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx
UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
HOURS_PATTERN = re.compile(r"^\d+(\.\d{1,2})?$")

HOURS_MIN = Decimal("0")
HOURS_MAX = Decimal("168")
DETAILS_MAX_LENGTH = 1000


def is_valid_uuid(value: Optional[str]) -> bool:
    """Check that a string has the UUID v4 shape."""
    return bool(value) and UUID_V4_PATTERN.match(value) is not None


def parse_uuid(value: Optional[str]) -> Optional[str]:
    """
    Parse a single id parameter.

    Returns:
        Lower-cased UUID string, or None when blank or not a UUID v4.
        Never raises: callers decide whether a missing id is an error.
    """
    if value is None:
        return None
    value = value.strip()
    if not is_valid_uuid(value):
        return None
    return value.lower()


def parse_uuids(value: Optional[str]) -> Optional[list[str]]:
    """
    Parse a comma-separated id list.

    Invalid members are dropped. When nothing valid remains the parameter is
    absent (None), never an empty list that would match nothing.

    Examples:
        "id1,bad,id2" -> ["id1", "id2"]
        ",,,"         -> None
    """
    if not value or not value.strip():
        return None

    ids = []
    for part in value.split(","):
        parsed = parse_uuid(part)
        if parsed is not None and parsed not in ids:
            ids.append(parsed)

    return ids or None


def parse_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a YYYY-MM-DD calendar date.

    The digits must name a real day: "2024-02-30" and "2023-02-29" return
    None instead of rolling over into March, "2024-02-29" is accepted.
    """
    if value is None:
        return None
    match = ISO_DATE_PATTERN.match(value.strip())
    if not match:
        return None

    year, month, day = (int(part) for part in match.groups())
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None

    # Re-derive the components and require an exact match
    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        return None
    return parsed


def parse_hours(value) -> Decimal:
    """
    Validate a work-log hours value.

    Args:
        value: Decimal string such as "8" or "7.25" (numbers are accepted too)

    Returns:
        Decimal with at most two decimal places

    Raises:
        ValueError: If the format is wrong or the value is outside (0, 168]
    """
    text = str(value).strip()
    if not HOURS_PATTERN.match(text):
        raise ValueError("Hours must be a decimal number with up to 2 decimal places")
    hours = Decimal(text)

    if hours <= HOURS_MIN:
        raise ValueError("Hours must be greater than 0")
    if hours > HOURS_MAX:
        raise ValueError("Hours cannot exceed 168 (1 week)")
    return hours


def validate_details(value: Optional[str]) -> Optional[str]:
    """Details are optional; empty becomes None."""
    if not value:
        return None
    if len(value) > DETAILS_MAX_LENGTH:
        raise ValueError(f"Details must be {DETAILS_MAX_LENGTH} characters or less")
    return value
