from typing import Any

from cryptoexchange.clients.base import ExchangeClient
from cryptoexchange.errors import InvalidParameter

API_URL: str = "https://api.bitfinex.com/v2/"

# Field order of the ticker arrays returned by the v2 API.
TRADING_PAIR_FIELDS: tuple[str, ...] = (
    "bid",
    "bid_size",
    "ask",
    "ask_size",
    "daily_change",
    "daily_change_perc",
    "last_price",
    "volume",
    "high",
    "low",
)
FUNDING_CURRENCY_FIELDS: tuple[str, ...] = (
    "frr",
    "bid",
    "bid_period",
    "bid_size",
    "ask",
    "ask_period",
    "ask_size",
    "daily_change",
    "daily_change_perc",
    "last_price",
    "volume",
    "high",
    "low",
)


def ticker_fields(symbol: str) -> tuple[str, ...]:
    """Returns the field names of a ticker array for this symbol.

    Symbols starting with `t` are trading pairs, symbols starting with `f`
    are funding currencies.

    Raises:
        InvalidParameter: If the symbol is neither.
    """
    if symbol.startswith("f"):
        fields = FUNDING_CURRENCY_FIELDS
    elif symbol.startswith("t"):
        fields = TRADING_PAIR_FIELDS
    else:
        err_msg = f"Not a trading pair or funding currency: {symbol}"
        raise InvalidParameter(err_msg)
    return fields


def annotate_ticker(symbol: str, values: list[float]) -> dict[str, float]:
    """Maps a positional ticker array onto field names."""
    return dict(zip(ticker_fields(symbol), values, strict=False))


class BitfinexV2(ExchangeClient):
    """Client for the public Bitfinex v2 REST API."""

    PUBLIC_URL = API_URL

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "bitfinex_v2"

    @property
    def display_name(self) -> str:
        return "Bitfinex v2"

    async def tickers(self, *symbols: str) -> list[list[Any]]:
        """Returns a high level overview of the state of several markets.

        Each entry holds the best bid and ask, the last trade price, the daily
        volume and how much the price moved over the last day. Use
        `tickers_json` for a keyed version.

        Args:
            symbols: Trading pairs (`tBTCUSD`) and funding currencies (`fUSD`).
        """
        return await self._get("tickers", {"symbols": ",".join(symbols)})

    async def tickers_json(self, *symbols: str) -> dict[str, dict[str, float]]:
        """Like `tickers`, keyed by symbol with named fields."""
        result = await self.tickers(*symbols)
        return {row[0]: annotate_ticker(row[0], row[1:]) for row in result}

    async def ticker(self, symbol: str) -> list[float]:
        """Returns the ticker of one trading pair or funding currency."""
        return await self._get(f"ticker/{symbol}")

    async def ticker_json(self, symbol: str) -> dict[str, float]:
        """Like `ticker`, with named fields."""
        fields = ticker_fields(symbol)
        return dict(zip(fields, await self.ticker(symbol), strict=False))
