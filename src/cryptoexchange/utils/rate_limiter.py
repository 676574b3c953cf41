import math
from collections import deque
from collections.abc import Iterable, Iterator, Sized

from loguru import logger

# Length of the trailing window, in milliseconds.
WINDOW_MS: int = 1000

PUBLIC = "public"
TRADING = "trading"


class RateWindow(Sized):
    """Timestamps (epoch milliseconds) of recent request attempts for one rate class.

    Entries are kept in insertion order, which is also chronological order.
    The window only ever grows by `check_and_record`, which evicts expired
    entries in the same synchronous step.
    """

    def __init__(self, timestamps: Iterable[int] = ()) -> None:
        self._data: deque[int] = deque(timestamps)

    def append(self, timestamp: int) -> None:
        self._data.append(timestamp)

    def evict_before(self, boundary: int) -> None:
        """Drops every entry less than or equal to `boundary`."""
        while self._data and self._data[0] <= boundary:
            self._data.popleft()

    def count(self, timestamp: int) -> int:
        """Returns how many entries share exactly this timestamp."""
        return self._data.count(timestamp)

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[int]:
        return iter(self._data)

    def __repr__(self) -> str:
        return f"RateWindow(size={len(self)}, data={list(self._data)})"


def validate_limit(limit: object, name: str = "Rate limit") -> None:
    """Raises ValueError unless `limit` is a finite positive number."""
    if (
        isinstance(limit, bool)
        or not isinstance(limit, int | float)
        or not math.isfinite(limit)
        or limit <= 0
    ):
        err_msg = f"{name} must be a positive number."
        raise ValueError(err_msg)


def check_and_record(timestamp: int, limit: float, window: RateWindow) -> bool:
    """Records a request attempt and reports whether it fits within the limit.

    The attempt is appended to `window` before the check, so rejected attempts
    still occupy a slot until they expire.

    Entries exactly `WINDOW_MS` older than `timestamp` are expired.

    Args:
        timestamp: The current time in epoch milliseconds.
        limit: The maximum number of attempts admitted per window.
        window: The window to update in place.

    Returns:
        True if the attempt is admitted, False if it exceeds the limit.

    Raises:
        ValueError: If `limit` is not a finite positive number. The window is
            left untouched.
    """
    validate_limit(limit)
    window.append(timestamp)
    window.evict_before(timestamp - WINDOW_MS)
    return len(window) <= limit


class RateLimiter:
    """Sliding-window limiter with an independent window per rate class.

    Usage:
        limiter = RateLimiter({"public": 6, "trading": 6})
        if not limiter.check("trading", now_ms()):
            raise RateLimitExceeded(...)

    The check is synchronous. Callers run it before their first `await`, so
    concurrent tasks are admitted in the order they were issued.
    """

    def __init__(self, limits: dict[str, float]) -> None:
        """Initializes the limiter.

        Args:
            limits: Maximum attempts per second, keyed by rate class.

        Raises:
            ValueError: If any limit is not a finite positive number.
        """
        for rate_class, limit in limits.items():
            validate_limit(limit, f"Rate limit for '{rate_class}'")
        self._limits = dict(limits)
        self._windows = {rate_class: RateWindow() for rate_class in limits}

    def limit(self, rate_class: str) -> float:
        return self._limits[rate_class]

    def window(self, rate_class: str) -> RateWindow:
        return self._windows[rate_class]

    def check(self, rate_class: str, timestamp: int) -> bool:
        """Records an attempt for `rate_class` and returns whether it is admitted."""
        admitted = check_and_record(
            timestamp, self._limits[rate_class], self._windows[rate_class]
        )
        if not admitted:
            logger.debug(
                f"Rate class '{rate_class}' over limit "
                f"({len(self._windows[rate_class])}/{self._limits[rate_class]:g})"
            )
        return admitted

    def collisions(self, rate_class: str, timestamp: int) -> int:
        """Returns how many recorded attempts share this exact millisecond."""
        return self._windows[rate_class].count(timestamp)
