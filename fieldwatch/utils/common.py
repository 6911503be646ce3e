"""
Common utility functions for FieldWatch.

This module provides shared helpers for parsing dates and timestamps coming
out of the evidence store, rounding evidence numbers, and serializing results.
"""

import json
import math
import logging
from typing import Any, Optional, Union
from enum import Enum
from datetime import datetime, date, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

Number = Union[int, float]
DateType = Union[date, datetime, str]


def parse_date(value: Optional[DateType]) -> Optional[date]:
    """
    Parse a date value into a date object.

    Args:
        value: date, datetime or ISO-like date string

    Returns:
        Date object or None if parsing fails
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    formats = [
        '%Y-%m-%d',   # 2024-05-01
        '%d/%m/%Y',   # 01/05/2024
        '%m/%d/%Y',   # 05/01/2024
    ]

    for fmt in formats:
        try:
            return datetime.strptime(str(value), fmt).date()
        except ValueError:
            continue

    logger.warning(f"Failed to parse date string: {value}")
    return None


def parse_timestamp(value: Optional[Union[datetime, str]]) -> Optional[datetime]:
    """
    Parse a timestamp into an aware datetime (UTC when no offset is given).

    Args:
        value: datetime or ISO 8601 string (a trailing 'Z' is accepted)

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):
        raise ValueError(f"Not a timestamp: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def minutes_between(start: datetime, end: datetime) -> float:
    """Return the signed number of minutes from start to end."""
    return (parse_timestamp(end) - parse_timestamp(start)).total_seconds() / 60.0


def round_half_up(value: Number) -> int:
    """
    Round to the nearest integer, halves rounding up.

    Evidence numbers are reported this way so that 2.5 becomes 3 rather than
    Python's banker's rounding result of 2.
    """
    return int(math.floor(value + 0.5))


def calculate_percentage(part: Number, whole: Number) -> Optional[float]:
    """
    Calculate a percentage safely.

    Args:
        part: Numerator
        whole: Denominator

    Returns:
        Percentage (0-100) or None if calculation fails
    """
    try:
        if whole == 0:
            return None
        return (part / whole) * 100
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def safe_json_serialize(obj: Any) -> Any:
    """
    Convert an object to a JSON-serializable format.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation of the object
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Enum):
        return obj.value
    elif hasattr(obj, 'to_dict'):
        return obj.to_dict()
    elif isinstance(obj, Path):
        return str(obj)
    return str(obj)


def safe_json_dumps(data: Any, indent: Optional[int] = None) -> str:
    """
    Convert data to a JSON string, handling non-serializable types.

    Args:
        data: Data to convert to JSON
        indent: Optional indentation

    Returns:
        JSON string
    """
    return json.dumps(data, default=safe_json_serialize, indent=indent)
