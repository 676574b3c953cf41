from collections import deque

import httpx
import pytest

from cryptoexchange.config import Settings

CREDENTIAL_ENV_VARS = [
    f"CRYPTO_{venue}_{part}"
    for venue in ("POLONIEX", "BITFINEX", "BITFINEX_V2", "BITTREX")
    for part in ("KEY", "SECRET")
]


class FakeClock:
    """A controllable millisecond clock."""

    def __init__(self, start: int = 1_504_224_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def tick(self, ms: int) -> None:
        self.now += ms


class FakeExchange:
    """Records every request and replays queued responses, defaulting to `200 {}`."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._replies: deque[httpx.Response | Exception] = deque()

    def reply(self, status_code: int = 200, **kwargs: object) -> None:
        self._replies.append(httpx.Response(status_code, **kwargs))

    def fail(self, exc: Exception) -> None:
        self._replies.append(exc)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._replies:
            item = self._replies.popleft()
            if isinstance(item, Exception):
                raise item
            return item
        return httpx.Response(200, json={})


@pytest.fixture(autouse=True)
def _clean_credential_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keeps credentials from the developer's environment out of the tests."""
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    """Default settings, independent of any config file on this machine."""
    return Settings()


@pytest.fixture()
def fake_exchange() -> FakeExchange:
    return FakeExchange()


@pytest.fixture()
def http_client(fake_exchange: FakeExchange) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_exchange.handler))
