import json
from typing import Any

from loguru import logger

from cryptoexchange.errors import ApiError


def _extract_error(parsed: Any) -> str | None:
    """Returns the structured error text of a parsed body, if it carries one."""
    if isinstance(parsed, dict):
        for field in ("error", "message"):
            if parsed.get(field):
                return str(parsed[field])
    # Bitfinex v2 reports errors as ["error", <code>, <text>].
    elif isinstance(parsed, list) and parsed and parsed[0] == "error":
        return str(parsed[-1])
    return None


def parse_response(status_code: int, body_text: str, venue: str = "exchange") -> Any:
    """Decides whether a raw HTTP response is a success.

    This is the single place where success is decided: callers never have
    to look at the status code or the body shape themselves.

    Args:
        status_code: The HTTP status code.
        body_text: The complete response body.
        venue: The exchange name used in error messages.

    Returns:
        The parsed JSON value.

    Raises:
        ApiError: If the body is not JSON, the status is outside 2xx, or a
            2xx body carries a truthy `error` field.
    """
    try:
        parsed = json.loads(body_text)
    except ValueError:
        logger.debug(f"[{venue}] Non-JSON response (HTTP {status_code}): {body_text!r}")
        raise ApiError(venue, status_code, body_text) from None

    if not 200 <= status_code <= 299:
        error = _extract_error(parsed) or body_text
        logger.debug(f"[{venue}] HTTP {status_code} response: {error}")
        raise ApiError(venue, status_code, error)

    if isinstance(parsed, dict) and parsed.get("error"):
        logger.debug(f"[{venue}] Error in HTTP {status_code} response: {parsed['error']}")
        raise ApiError(venue, status_code, str(parsed["error"]))

    return parsed
