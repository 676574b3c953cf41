import abc
import types
from collections.abc import Callable, Mapping
from typing import Any, Self

import httpx
from loguru import logger

from cryptoexchange import __version__
from cryptoexchange.config import ExchangeSettings, Settings, resolve_credentials
from cryptoexchange.errors import (
    ExchangeError,
    MissingCredentials,
    RateLimitExceeded,
    TransportError,
)
from cryptoexchange.models import Credentials, RequestEnvelope
from cryptoexchange.response import parse_response
from cryptoexchange.signing import (
    POLONIEX_SCHEME,
    SignedRequestBuilder,
    SigningScheme,
    encode_form,
)
from cryptoexchange.utils.numeric import format_decimal
from cryptoexchange.utils.rate_limiter import PUBLIC, TRADING, RateLimiter
from cryptoexchange.utils.time import now_ms, to_unix_seconds

USER_AGENT: str = f"cryptoexchange v{__version__}"


class ExchangeClient(abc.ABC):
    """An abstract base class for all exchange REST clients.

    This class owns everything the endpoint methods share: credentials, the
    per-rate-class sliding windows, the request signer, and the HTTP client.
    Endpoint methods only build a command mapping and hand it to `_get` or
    `_post`.

    Each call moves through the same steps: rate-limit check (fail fast),
    signing for private calls, one HTTP round trip, then response parsing.
    Everything before the HTTP request is synchronous, so concurrently issued
    calls are admitted in issuance order.
    """

    # Base URL for public GET requests; paths are appended verbatim.
    PUBLIC_URL: str = ""
    # Base URL for signed POST requests, or None for public-only APIs.
    TRADING_URL: str | None = None
    SIGNING_SCHEME: SigningScheme = POLONIEX_SCHEME

    def __init__(
        self,
        key: str | None = None,
        secret: str | None = None,
        *,
        public_rate: float | None = None,
        trading_rate: float | None = None,
        precision: int | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], int] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initializes the client.

        Args:
            key: API key. Falls back to CRYPTO_<EXCHANGE>_KEY.
            secret: API secret. Falls back to CRYPTO_<EXCHANGE>_SECRET.
            public_rate: Maximum public requests per second.
            trading_rate: Maximum private requests per second.
            precision: Fractional digits for prices and amounts.
            http_client: A shared httpx.AsyncClient. It is not closed by `aclose`.
            clock: Returns the current time in epoch milliseconds.
            settings: Settings to use instead of the loaded config file.
        """
        settings = settings or Settings.get_instance()
        defaults: ExchangeSettings = settings.exchange(self.venue_name)

        self.credentials: Credentials | None = resolve_credentials(
            self.venue_name, key, secret, use_keyring=settings.credentials.use_keyring
        )
        self.precision = precision if precision is not None else defaults.precision
        self.public_rate = public_rate if public_rate is not None else defaults.public_rate
        self.trading_rate = (
            trading_rate if trading_rate is not None else defaults.trading_rate
        )
        self._limiter = RateLimiter({PUBLIC: self.public_rate, TRADING: self.trading_rate})
        self._clock = clock or now_ms

        self._signer: SignedRequestBuilder | None = None
        if self.TRADING_URL is not None:
            self._signer = SignedRequestBuilder(
                self.TRADING_URL, self.SIGNING_SCHEME, user_agent=USER_AGENT
            )

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.http.timeout_sec
        )

        logger.debug(
            f"[{self.venue_name}] Client created "
            f"(public={self.public_rate:g}/s, trading={self.trading_rate:g}/s, "
            f"authenticated={self.credentials is not None})"
        )

    @property
    @abc.abstractmethod
    def venue_name(self) -> str:
        """A unique, lowercase identifier for the exchange (e.g., 'poloniex')."""
        raise NotImplementedError

    @property
    def display_name(self) -> str:
        """The exchange name as shown in rate-limit errors."""
        return self.venue_name.capitalize()

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def signer(self) -> SignedRequestBuilder | None:
        return self._signer

    # --- Lifecycle ---

    async def aclose(self) -> None:
        """Closes the HTTP client if this instance created it."""
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()

    # --- Parameter formatting ---

    def _decimal(self, value: Any) -> str:
        """Formats a price or amount with this client's precision."""
        return format_decimal(value, self.precision)

    @staticmethod
    def _seconds(timestamp: Any) -> str:
        """Formats a date boundary as whole Unix seconds."""
        return to_unix_seconds(timestamp)

    # --- Request primitives ---

    def _admit(self, rate_class: str, timestamp: int) -> None:
        if not self._limiter.check(rate_class, timestamp):
            logger.warning(
                f"[{self.venue_name}] Rejected {rate_class} request: over "
                f"{self._limiter.limit(rate_class):g} per second"
            )
            raise RateLimitExceeded(self.display_name, self._limiter.limit(rate_class))

    def _prepare_get(
        self, path: str = "", query: Mapping[str, Any] | None = None
    ) -> RequestEnvelope:
        self._admit(PUBLIC, self._clock())
        url = self.PUBLIC_URL + path
        query_string = encode_form(query or {})
        if query_string:
            url = f"{url}?{query_string}"
        return RequestEnvelope(
            method="GET", url=url, headers={"User-Agent": USER_AGENT}
        )

    def _prepare_post(
        self, path: str = "", command: Mapping[str, str] | None = None
    ) -> RequestEnvelope:
        if self._signer is None:
            err_msg = f"{self.display_name} has no authenticated API."
            raise ExchangeError(err_msg)
        if self.credentials is None:
            raise MissingCredentials()

        timestamp = self._clock()
        self._admit(TRADING, timestamp)
        # The attempt just recorded is part of the count.
        collisions = self._limiter.collisions(TRADING, timestamp) - 1
        return self._signer.build(
            command or {}, self.credentials, timestamp, collisions, path=path
        )

    async def _get(self, path: str = "", query: Mapping[str, Any] | None = None) -> Any:
        """Sends a public GET request and returns the parsed JSON result.

        Raises:
            RateLimitExceeded: If the public rate class is over its limit.
            TransportError: If the connection fails.
            ApiError: If the exchange reports an error.
        """
        return await self._send(self._prepare_get(path, query))

    async def _post(self, path: str = "", command: Mapping[str, str] | None = None) -> Any:
        """Sends a signed POST request and returns the parsed JSON result.

        Credentials are checked before the rate limiter, so a client without
        credentials never consumes trading slots.

        Raises:
            MissingCredentials: If no key and secret are configured.
            RateLimitExceeded: If the trading rate class is over its limit.
            TransportError: If the connection fails.
            ApiError: If the exchange reports an error.
        """
        return await self._send(self._prepare_post(path, command))

    async def _send(self, envelope: RequestEnvelope) -> Any:
        """Performs the HTTP round trip for a prepared request."""
        logger.debug(
            f"[{self.venue_name}] {envelope.method} {envelope.url}"
            + (f" nonce={envelope.nonce}" if envelope.nonce is not None else "")
        )
        try:
            response = await self.http_client.request(
                envelope.method,
                envelope.url,
                content=envelope.body,
                headers=envelope.headers,
            )
        except httpx.HTTPError as e:
            logger.warning(f"[{self.venue_name}] Transport error: {type(e).__name__}: {e}")
            raise TransportError(str(e) or type(e).__name__) from e

        return parse_response(response.status_code, response.text, self.venue_name)
