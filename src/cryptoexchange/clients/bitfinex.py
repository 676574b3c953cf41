from typing import Any

from cryptoexchange.clients.base import ExchangeClient
from cryptoexchange.signing import BITFINEX_SCHEME

API_URL: str = "https://api.bitfinex.com/v1/"


class Bitfinex(ExchangeClient):
    """Client for the Bitfinex v1 REST API.

    Authenticated requests carry a JSON payload with the request path and
    nonce. The payload is base64-encoded into the `X-BFX-PAYLOAD` header and
    signed with HMAC-SHA384. The trading limit defaults to 90 requests per
    minute.
    """

    PUBLIC_URL = API_URL
    TRADING_URL = API_URL
    SIGNING_SCHEME = BITFINEX_SCHEME

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "bitfinex"

    async def symbols(self) -> list[str]:
        """Returns the list of symbol names, e.g. ['btcusd', 'ltcusd', ...]."""
        return await self._get("symbols")

    async def balances(self) -> list[dict[str, str]]:
        """Returns your wallet balances."""
        return await self._post("balances")
