# src/cryptoexchange/clients/__init__.py
"""This package contains the exchange-specific REST clients.

Each client is a thin layer of endpoint methods that build command mappings
and hand them to the shared `_get`/`_post` primitives of `ExchangeClient`,
defined in `cryptoexchange.clients.base`.
"""

from cryptoexchange.clients.base import ExchangeClient
from cryptoexchange.clients.bitfinex import Bitfinex
from cryptoexchange.clients.bitfinex_v2 import BitfinexV2
from cryptoexchange.clients.bittrex import Bittrex
from cryptoexchange.clients.poloniex import Poloniex

__all__ = ["Bitfinex", "BitfinexV2", "Bittrex", "ExchangeClient", "Poloniex"]
