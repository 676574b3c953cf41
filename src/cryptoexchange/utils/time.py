import time
from datetime import datetime, timezone
from typing import Any

from loguru import logger

# A heuristic to determine the unit of a numeric timestamp.
# If a timestamp (in seconds) is greater than this, it's likely in milliseconds.
# This corresponds to a date in the year 2286.
MILLISECONDS_THRESHOLD = 10**10
# If a timestamp (in seconds) is greater than this, it's likely in microseconds.
MICROSECONDS_THRESHOLD = 10**13


def now_ms() -> int:
    """Returns the current time as milliseconds since the Unix epoch.

    This is the default clock used by exchange clients for rate limiting
    and nonce generation.

    Returns:
        The current time in milliseconds.
    """
    return time.time_ns() // 1_000_000


def to_datetime(timestamp: Any) -> datetime:  # noqa: C901
    """Normalizes a timestamp from various formats to an aware UTC datetime.

    This function can handle:
    - int, float: Assumed to be Unix timestamps in seconds, milliseconds,
                  or microseconds. The function uses heuristics to guess the unit.
    - str: Assumed to be in ISO 8601 format. Handles 'Z' suffix for UTC.
    - datetime: Python datetime objects. Naive datetimes are assumed to be UTC.

    Args:
        timestamp: The timestamp to normalize.

    Returns:
        A timezone-aware datetime in UTC.

    Raises:
        ValueError: If the timestamp format is unrecognized or invalid.
    """
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            # Assume naive datetimes are in UTC, as per project convention.
            return timestamp.replace(tzinfo=timezone.utc)
        return timestamp.astimezone(timezone.utc)

    if isinstance(timestamp, bool):
        err_msg = f"Unsupported timestamp type: {type(timestamp).__name__}"
        raise ValueError(err_msg)

    if isinstance(timestamp, int | float):
        if timestamp > MICROSECONDS_THRESHOLD:
            ts_seconds = timestamp / 1_000_000
        elif timestamp > MILLISECONDS_THRESHOLD:
            ts_seconds = timestamp / 1_000
        else:
            ts_seconds = timestamp
        try:
            return datetime.fromtimestamp(ts_seconds, tz=timezone.utc)
        except (OSError, OverflowError, ValueError) as e:
            err_msg = f"Numeric timestamp '{timestamp}' is out of range."
            raise ValueError(err_msg) from e

    if isinstance(timestamp, str):
        value = timestamp
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            dt_obj = datetime.fromisoformat(value)
        except ValueError as e:
            logger.warning(f"Could not parse timestamp string '{timestamp}': {e}")
            err_msg = f"Invalid or unrecognized timestamp string format: {timestamp}"
            raise ValueError(err_msg) from e
        if dt_obj.tzinfo is None:
            return dt_obj.replace(tzinfo=timezone.utc)
        return dt_obj.astimezone(timezone.utc)

    err_msg = f"Unsupported timestamp type: {type(timestamp).__name__}"
    raise ValueError(err_msg)


def to_unix_seconds(timestamp: Any) -> str:
    """Converts a timestamp to whole Unix seconds, formatted as a string.

    Exchanges expect range boundaries (`start`, `end`) as integer seconds;
    fractional seconds are floored.

    Example: datetime(2017, 9, 1, tzinfo=timezone.utc) -> "1504224000"
    """
    return str(int(to_datetime(timestamp).timestamp() // 1))
