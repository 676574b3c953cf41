# src/cryptoexchange/__init__.py
"""cryptoexchange: asyncio clients for cryptocurrency exchange REST APIs.

This package wraps the public market-data and private trading endpoints of
several exchanges behind typed async methods. The clients share one core:
per-rate-class sliding-window rate limiting, strictly increasing nonces,
HMAC request signing, and uniform response/error normalization.

Key sub-packages:
- `clients`: One client class per exchange, built on `ExchangeClient`.
- `utils`: The rate limiter and small formatting/time helpers.
"""

import importlib.metadata

try:
    __version__: str = importlib.metadata.version("cryptoexchange")
except importlib.metadata.PackageNotFoundError:
    # Running from a source checkout that has not been installed.
    __version__ = "0.0.0-dev"
