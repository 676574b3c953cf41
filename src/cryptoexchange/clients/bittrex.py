from cryptoexchange.clients.base import ExchangeClient

API_URL: str = "https://bittrex.com/api/v1.1/"


class Bittrex(ExchangeClient):
    """Client for the Bittrex v1.1 REST API.

    Only credential handling and the shared public request primitive are
    provided; endpoint methods are added as they are needed.
    """

    PUBLIC_URL = API_URL

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "bittrex"
