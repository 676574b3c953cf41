import base64
import hashlib
import hmac
import json

import httpx
import pytest

from cryptoexchange.clients import Bitfinex, BitfinexV2, Bittrex
from cryptoexchange.config import Settings
from cryptoexchange.errors import (
    ApiError,
    ExchangeError,
    InvalidParameter,
    MissingCredentials,
    RateLimitExceeded,
)
from tests.conftest import FakeClock, FakeExchange

TICKER_TRADING = [7600.1, 41.2, 7600.2, 52.1, -150.3, -0.0194, 7600.1, 20148.7, 7818.0, 7450.0]
TICKER_FUNDING = [
    0.0002, 0.00019, 30, 1452.9, 0.000195, 2, 153.2, -0.00001, -0.05, 0.000195, 98540.1,
    0.0003, 0.00015,
]


class TestBitfinex:
    def test_constructor(self, settings: Settings) -> None:
        bfx = Bitfinex("key", "secret", settings=settings)
        assert bfx.PUBLIC_URL == "https://api.bitfinex.com/v1/"
        assert bfx.credentials is not None
        assert bfx.credentials.key == "key"
        assert bfx.trading_rate == pytest.approx(1.5)

    def test_credentials_from_environment(
        self, monkeypatch: pytest.MonkeyPatch, settings: Settings
    ) -> None:
        monkeypatch.setenv("CRYPTO_BITFINEX_KEY", "env key")
        monkeypatch.setenv("CRYPTO_BITFINEX_SECRET", "env secret")
        bfx = Bitfinex(settings=settings)
        assert bfx.credentials is not None
        assert (bfx.credentials.key, bfx.credentials.secret) == ("env key", "env secret")

    @pytest.mark.asyncio
    async def test_symbols(
        self, http_client: httpx.AsyncClient, fake_exchange: FakeExchange, settings: Settings
    ) -> None:
        fake_exchange.reply(200, json=["btcusd", "ltcusd", "ltcbtc"])
        bfx = Bitfinex(http_client=http_client, settings=settings)
        assert await bfx.symbols() == ["btcusd", "ltcusd", "ltcbtc"]
        assert str(fake_exchange.requests[0].url) == "https://api.bitfinex.com/v1/symbols"

    @pytest.mark.asyncio
    async def test_balances_are_signed_with_payload_headers(
        self,
        http_client: httpx.AsyncClient,
        fake_exchange: FakeExchange,
        clock: FakeClock,
        settings: Settings,
    ) -> None:
        balances = [{"type": "exchange", "currency": "btc", "amount": "1", "available": "1"}]
        fake_exchange.reply(200, json=balances)
        bfx = Bitfinex("key", "secret", http_client=http_client, clock=clock, settings=settings)

        assert await bfx.balances() == balances

        request = fake_exchange.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.bitfinex.com/v1/balances"
        assert json.loads(request.content) == {
            "request": "/v1/balances",
            "nonce": str(clock.now * 100),
        }
        payload = request.headers["X-BFX-PAYLOAD"]
        assert base64.b64decode(payload) == request.content
        assert request.headers["X-BFX-APIKEY"] == "key"
        assert request.headers["X-BFX-SIGNATURE"] == hmac.new(
            b"secret", payload.encode(), hashlib.sha384
        ).hexdigest()

    @pytest.mark.asyncio
    async def test_trading_limit_of_ninety_per_minute(
        self,
        http_client: httpx.AsyncClient,
        fake_exchange: FakeExchange,
        clock: FakeClock,
        settings: Settings,
    ) -> None:
        bfx = Bitfinex("key", "secret", http_client=http_client, clock=clock, settings=settings)
        await bfx.balances()
        with pytest.raises(RateLimitExceeded) as exc_info:
            await bfx.balances()
        assert str(exc_info.value) == (
            "restricting requests to Bitfinex to maximum of 1.5 per second"
        )
        assert len(fake_exchange.requests) == 1

    @pytest.mark.asyncio
    async def test_balances_without_credentials(
        self, http_client: httpx.AsyncClient, fake_exchange: FakeExchange, settings: Settings
    ) -> None:
        bfx = Bitfinex(http_client=http_client, settings=settings)
        with pytest.raises(MissingCredentials):
            await bfx.balances()
        assert fake_exchange.requests == []

    @pytest.mark.asyncio
    async def test_message_field_on_error_status(
        self, http_client: httpx.AsyncClient, fake_exchange: FakeExchange, settings: Settings
    ) -> None:
        fake_exchange.reply(400, json={"message": "Nonce is too small."})
        bfx = Bitfinex("key", "secret", http_client=http_client, settings=settings)
        with pytest.raises(ApiError) as exc_info:
            await bfx.balances()
        assert str(exc_info.value) == "(bitfinex) HTTP 400 Returned error: Nonce is too small."


class TestBitfinexV2:
    @pytest.fixture()
    def bfx(self, http_client: httpx.AsyncClient, settings: Settings) -> BitfinexV2:
        return BitfinexV2(http_client=http_client, settings=settings)

    @pytest.mark.asyncio
    async def test_tickers(self, bfx: BitfinexV2, fake_exchange: FakeExchange) -> None:
        rows = [["tBTCUSD", *TICKER_TRADING], ["fUSD", *TICKER_FUNDING]]
        fake_exchange.reply(200, json=rows)

        assert await bfx.tickers("tBTCUSD", "fUSD") == rows
        request = fake_exchange.requests[0]
        assert request.url.path == "/v2/tickers"
        assert request.url.params["symbols"] == "tBTCUSD,fUSD"

    @pytest.mark.asyncio
    async def test_tickers_json(self, bfx: BitfinexV2, fake_exchange: FakeExchange) -> None:
        fake_exchange.reply(200, json=[["tBTCUSD", *TICKER_TRADING], ["fUSD", *TICKER_FUNDING]])

        result = await bfx.tickers_json("tBTCUSD", "fUSD")
        assert result["tBTCUSD"]["bid"] == 7600.1
        assert result["tBTCUSD"]["low"] == 7450.0
        assert result["fUSD"]["frr"] == 0.0002
        assert result["fUSD"]["bid_period"] == 30
        assert result["fUSD"]["low"] == 0.00015

    @pytest.mark.asyncio
    async def test_ticker_json(self, bfx: BitfinexV2, fake_exchange: FakeExchange) -> None:
        fake_exchange.reply(200, json=TICKER_TRADING)
        result = await bfx.ticker_json("tBTCUSD")
        assert result["last_price"] == 7600.1
        assert fake_exchange.requests[0].url.path == "/v2/ticker/tBTCUSD"

    @pytest.mark.asyncio
    async def test_ticker_json_rejects_unknown_prefix(
        self, bfx: BitfinexV2, fake_exchange: FakeExchange
    ) -> None:
        with pytest.raises(InvalidParameter, match="Not a trading pair or funding currency"):
            await bfx.ticker_json("BTCUSD")
        assert fake_exchange.requests == []

    @pytest.mark.asyncio
    async def test_error_array(self, bfx: BitfinexV2, fake_exchange: FakeExchange) -> None:
        fake_exchange.reply(500, json=["error", 10020, "symbol: invalid"])
        with pytest.raises(ApiError, match="symbol: invalid"):
            await bfx.ticker("tNOPE")

    @pytest.mark.asyncio
    async def test_has_no_private_api(self, bfx: BitfinexV2) -> None:
        with pytest.raises(ExchangeError, match="Bitfinex v2 has no authenticated API"):
            await bfx._post("auth/r/wallets")


class TestBittrex:
    def test_credentials_from_arguments(self, settings: Settings) -> None:
        btx = Bittrex("key", "secret", settings=settings)
        assert btx.credentials is not None
        assert btx.credentials.key == "key"

    def test_credentials_from_environment(
        self, monkeypatch: pytest.MonkeyPatch, settings: Settings
    ) -> None:
        monkeypatch.setenv("CRYPTO_BITTREX_KEY", "env key")
        monkeypatch.setenv("CRYPTO_BITTREX_SECRET", "env secret")
        btx = Bittrex(settings=settings)
        assert btx.credentials is not None
        assert btx.credentials.secret == "env secret"

    def test_public_only_without_credentials(self, settings: Settings) -> None:
        btx = Bittrex(settings=settings)
        assert btx.credentials is None
        assert btx.signer is None
