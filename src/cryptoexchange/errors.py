"""Exceptions raised by the exchange clients.

Every failure surfaces to the caller as a subclass of `ExchangeError` whose
string form is a single descriptive message. Nothing is retried and nothing
is logged-and-swallowed inside the library.
"""


class ExchangeError(Exception):
    """Base exception for all exchange client errors."""

    @property
    def message(self) -> str:
        return str(self)


class RateLimitExceeded(ExchangeError):
    """Raised before any network I/O when a rate class is over its limit."""

    def __init__(self, venue: str, limit: float) -> None:
        self.venue = venue
        self.limit = limit
        super().__init__(
            f"restricting requests to {venue} to maximum of {limit:g} per second"
        )


class MissingCredentials(ExchangeError):
    """Raised when a private call is attempted without a key and secret."""

    def __init__(
        self, message: str = "Key and secret are not available for POST requests."
    ) -> None:
        super().__init__(message)


class TransportError(ExchangeError):
    """Raised when the underlying HTTP connection fails (DNS, TLS, reset, timeout)."""


class ApiError(ExchangeError):
    """Raised for non-2xx responses or an explicit `error` field in the body."""

    def __init__(self, venue: str, status_code: int, error: str) -> None:
        self.venue = venue
        self.status_code = status_code
        self.error = error
        super().__init__(f"({venue}) HTTP {status_code} Returned error: {error}")


class InvalidParameter(ExchangeError, ValueError):
    """Raised when a caller-supplied argument fails local validation."""
