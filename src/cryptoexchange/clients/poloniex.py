from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from cryptoexchange.clients.base import ExchangeClient
from cryptoexchange.errors import InvalidParameter

PUBLIC_API: str = "https://poloniex.com/public"
TRADING_API: str = "https://poloniex.com/tradingApi"

# Candlestick periods accepted by returnChartData, in seconds.
CHART_PERIODS: frozenset[int] = frozenset({300, 900, 1800, 7200, 14400, 86400})

ORDER_TYPES: frozenset[str] = frozenset({"fillOrKill", "immediateOrCancel", "postOnly"})
MOVE_ORDER_TYPES: frozenset[str] = frozenset({"immediateOrCancel", "postOnly"})
ACCOUNTS: frozenset[str] = frozenset({"exchange", "margin", "lending"})

Number = Decimal | float | int | str
Timestamp = datetime | int | float
OrderType = Literal["fillOrKill", "immediateOrCancel", "postOnly"]
Account = Literal["exchange", "margin", "lending"]


def _check_choice(name: str, value: str, choices: frozenset[str]) -> None:
    if value not in choices:
        err_msg = f"{name} must be one of {', '.join(sorted(choices))}"
        raise InvalidParameter(err_msg)


class Poloniex(ExchangeClient):
    """Client for the Poloniex public and trading REST APIs.

    When key and secret are not available, only the public methods work.
    Create API keys at https://poloniex.com/apiKeys.

    Usage:
        async with Poloniex(key, secret) as plx:
            ticker = await plx.return_ticker()
            order = await plx.buy("BTC_ETH", rate=0.07, amount=1.5)

    Prices and amounts are sent as fixed-precision decimal strings (8 digits
    by default). Dates are sent as whole Unix seconds.
    """

    PUBLIC_URL = PUBLIC_API
    TRADING_URL = TRADING_API

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "poloniex"

    # --- Public API ---

    async def return_ticker(self) -> dict[str, Any]:
        """Returns the ticker for all markets."""
        return await self._get(query={"command": "returnTicker"})

    async def return_24h_volume(self) -> dict[str, Any]:
        """Returns the 24-hour volume for all markets, plus totals for primary currencies."""
        return await self._get(query={"command": "return24hVolume"})

    async def return_order_book(
        self, currency_pair: str = "all", depth: int = 10
    ) -> dict[str, Any]:
        """Returns the order book for a market, or for all markets with `all`.

        Args:
            currency_pair: The market to query, e.g. 'BTC_NXT'.
            depth: How many entries to return from each side of the book.
        """
        return await self._get(
            query={
                "command": "returnOrderBook",
                "currencyPair": currency_pair,
                "depth": str(depth),
            }
        )

    async def return_trade_history(
        self,
        currency_pair: str,
        start: Timestamp | None = None,
        end: Timestamp | None = None,
        *,
        personal: bool = False,
    ) -> Any:
        """Returns trades for a market.

        Without a range this is the past 200 trades; with `start` and `end`
        up to 50,000 trades in that range.

        Args:
            currency_pair: The market to query.
            start: First event date.
            end: Last event date.
            personal: Query your own trades via the trading API instead of
                the public market trades.
        """
        command: dict[str, str] = {
            "command": "returnTradeHistory",
            "currencyPair": currency_pair,
        }
        if start is not None:
            command["start"] = self._seconds(start)
        if end is not None:
            command["end"] = self._seconds(end)
        if personal:
            return await self._post(command=command)
        return await self._get(query=command)

    async def return_chart_data(
        self, currency_pair: str, period: int, start: Timestamp, end: Timestamp
    ) -> list[dict[str, Any]]:
        """Returns candlestick chart data.

        Args:
            currency_pair: The market to query.
            period: Candlestick period in seconds; one of 300, 900, 1800,
                7200, 14400 or 86400.
            start: First candle date.
            end: Last candle date.

        Raises:
            InvalidParameter: If `period` is not supported. Nothing is sent.
        """
        if period not in CHART_PERIODS:
            err_msg = "period must be one of 300, 900, 1800, 7200, 14400 or 86400"
            raise InvalidParameter(err_msg)
        return await self._get(
            query={
                "command": "returnChartData",
                "currencyPair": currency_pair,
                "start": self._seconds(start),
                "end": self._seconds(end),
                "period": str(period),
            }
        )

    async def return_currencies(self) -> dict[str, Any]:
        """Returns information about currencies."""
        return await self._get(query={"command": "returnCurrencies"})

    async def return_loan_orders(self, currency: str | None = None) -> dict[str, Any]:
        """Returns the loan offers and demands for a currency."""
        return await self._get(query={"command": "returnLoanOrders", "currency": currency})

    # --- Trading API ---

    async def return_balances(self) -> dict[str, str]:
        """Returns all of your available balances."""
        return await self._post(command={"command": "returnBalances"})

    async def return_complete_balances(self, all_accounts: bool = False) -> dict[str, Any]:
        """Returns available and on-order balances with their estimated BTC value.

        Args:
            all_accounts: Include margin and lending accounts, not only the
                exchange account.
        """
        command = {"command": "returnCompleteBalances"}
        if all_accounts:
            command["account"] = "all"
        return await self._post(command=command)

    async def return_deposit_addresses(self) -> dict[str, str]:
        """Returns all of your deposit addresses."""
        return await self._post(command={"command": "returnDepositAddresses"})

    async def generate_new_address(self, currency: str) -> dict[str, Any]:
        """Generates a new deposit address for a currency."""
        return await self._post(
            command={"command": "generateNewAddress", "currency": currency}
        )

    async def return_deposits_withdrawals(
        self, start: Timestamp, end: Timestamp
    ) -> dict[str, Any]:
        """Returns your deposit and withdrawal history within a range."""
        return await self._post(
            command={
                "command": "returnDepositsWithdrawals",
                "start": self._seconds(start),
                "end": self._seconds(end),
            }
        )

    async def return_open_orders(self, currency_pair: str = "all") -> Any:
        """Returns your open orders for a market, or for all markets with `all`."""
        return await self._post(
            command={"command": "returnOpenOrders", "currencyPair": currency_pair}
        )

    async def return_order_trades(self, order_number: int) -> list[dict[str, Any]]:
        """Returns all trades involving one of your orders."""
        return await self._post(
            command={"command": "returnOrderTrades", "orderNumber": str(order_number)}
        )

    async def _place_order(
        self,
        side: str,
        currency_pair: str,
        rate: Number,
        amount: Number,
        order_type: OrderType | None,
    ) -> dict[str, Any]:
        command = {
            "command": side,
            "currencyPair": currency_pair,
            "rate": self._decimal(rate),
            "amount": self._decimal(amount),
        }
        if order_type:
            _check_choice("order type", order_type, ORDER_TYPES)
            command[order_type] = "1"
        return await self._post(command=command)

    async def buy(
        self,
        currency_pair: str,
        rate: Number,
        amount: Number,
        order_type: OrderType | None = None,
    ) -> dict[str, Any]:
        """Places a limit buy order and returns its order number.

        Args:
            currency_pair: The market to trade in.
            rate: The limit price.
            amount: The quantity to buy.
            order_type: `fillOrKill` fills entirely or aborts,
                `immediateOrCancel` fills what it can and cancels the rest,
                `postOnly` only ever adds liquidity.
        """
        return await self._place_order("buy", currency_pair, rate, amount, order_type)

    async def sell(
        self,
        currency_pair: str,
        rate: Number,
        amount: Number,
        order_type: OrderType | None = None,
    ) -> dict[str, Any]:
        """Places a limit sell order. Parameters are the same as for `buy`."""
        return await self._place_order("sell", currency_pair, rate, amount, order_type)

    async def cancel_order(self, order_number: int) -> dict[str, Any]:
        """Cancels one of your open orders."""
        return await self._post(
            command={"command": "cancelOrder", "orderNumber": str(order_number)}
        )

    async def move_order(
        self,
        order_number: int,
        rate: Number,
        amount: Number | None = None,
        order_type: Literal["immediateOrCancel", "postOnly"] | None = None,
    ) -> dict[str, Any]:
        """Cancels an order and places a new one with the same type in the same market.

        Args:
            order_number: The order to move.
            rate: The new limit price.
            amount: The new quantity; unchanged if omitted.
            order_type: `postOnly` or `immediateOrCancel`.
        """
        command = {
            "command": "moveOrder",
            "orderNumber": str(order_number),
            "rate": self._decimal(rate),
        }
        if amount is not None:
            command["amount"] = self._decimal(amount)
        if order_type:
            _check_choice("order type", order_type, MOVE_ORDER_TYPES)
            command[order_type] = "1"
        return await self._post(command=command)

    async def withdraw(
        self,
        currency: str,
        amount: Number,
        address: str,
        payment_id: str | None = None,
    ) -> dict[str, Any]:
        """Withdraws a currency to an address.

        Args:
            currency: The currency to withdraw.
            amount: The amount to withdraw.
            address: The destination address.
            payment_id: Payment ID, for currencies that need one.
        """
        command = {
            "command": "withdraw",
            "currency": currency,
            "amount": self._decimal(amount),
            "address": address,
        }
        if payment_id:
            command["paymentId"] = payment_id
        return await self._post(command=command)

    async def return_fee_info(self) -> dict[str, Any]:
        """Returns your current trading fees and trailing 30-day volume in BTC."""
        return await self._post(command={"command": "returnFeeInfo"})

    async def return_available_account_balances(
        self, account: Account | None = None
    ) -> dict[str, Any]:
        """Returns your balances sorted by account, optionally for one account only."""
        command = {"command": "returnAvailableAccountBalances"}
        if account:
            _check_choice("account", account, ACCOUNTS)
            command["account"] = account
        return await self._post(command=command)

    async def return_tradable_balances(self) -> dict[str, Any]:
        """Returns your current tradable balances for each currency in each market."""
        return await self._post(command={"command": "returnTradableBalances"})

    async def transfer_balance(
        self,
        currency: str,
        amount: Number,
        from_account: Account,
        to_account: Account,
    ) -> dict[str, Any]:
        """Transfers funds between your exchange, margin and lending accounts."""
        _check_choice("from_account", from_account, ACCOUNTS)
        _check_choice("to_account", to_account, ACCOUNTS)
        return await self._post(
            command={
                "command": "transferBalance",
                "currency": currency,
                "amount": self._decimal(amount),
                "fromAccount": from_account,
                "toAccount": to_account,
            }
        )

    async def return_margin_account_summary(self) -> dict[str, Any]:
        """Returns a summary of your entire margin account."""
        return await self._post(command={"command": "returnMarginAccountSummary"})

    async def _margin_order(
        self,
        side: str,
        currency_pair: str,
        rate: Number,
        amount: Number,
        lending_rate: Number | None,
    ) -> dict[str, Any]:
        command = {
            "command": side,
            "currencyPair": currency_pair,
            "rate": self._decimal(rate),
            "amount": self._decimal(amount),
        }
        if lending_rate is not None:
            command["lendingRate"] = self._decimal(lending_rate)
        return await self._post(command=command)

    async def margin_buy(
        self,
        currency_pair: str,
        rate: Number,
        amount: Number,
        lending_rate: Number | None = None,
    ) -> dict[str, Any]:
        """Places a margin buy order.

        Args:
            currency_pair: The market to trade in.
            rate: The limit price.
            amount: The quantity to buy.
            lending_rate: Maximum lending rate you are willing to accept.
        """
        return await self._margin_order(
            "marginBuy", currency_pair, rate, amount, lending_rate
        )

    async def margin_sell(
        self,
        currency_pair: str,
        rate: Number,
        amount: Number,
        lending_rate: Number | None = None,
    ) -> dict[str, Any]:
        """Places a margin sell order. Parameters are the same as for `margin_buy`."""
        return await self._margin_order(
            "marginSell", currency_pair, rate, amount, lending_rate
        )

    async def get_margin_position(self, currency_pair: str = "all") -> dict[str, Any]:
        """Returns your margin position in a market, or in all markets."""
        return await self._post(
            command={"command": "getMarginPosition", "currencyPair": currency_pair}
        )

    async def close_margin_position(self, currency_pair: str) -> dict[str, Any]:
        """Closes your margin position in a market with market orders."""
        return await self._post(
            command={"command": "closeMarginPosition", "currencyPair": currency_pair}
        )

    async def create_loan_offer(
        self,
        currency: str,
        amount: Number,
        rate: Number,
        auto_renew: bool,
        duration: int,
    ) -> dict[str, Any]:
        """Creates a loan offer.

        Args:
            currency: The currency to lend.
            amount: The amount to lend.
            rate: The daily lending rate.
            auto_renew: Renew the offer automatically when the loan ends.
            duration: Loan duration in days.
        """
        return await self._post(
            command={
                "command": "createLoanOffer",
                "currency": currency,
                "amount": self._decimal(amount),
                "duration": str(duration),
                "lendingRate": self._decimal(rate),
                "autoRenew": "1" if auto_renew else "0",
            }
        )

    async def cancel_loan_offer(self, order_number: int) -> dict[str, Any]:
        """Cancels one of your loan offers."""
        return await self._post(
            command={"command": "cancelLoanOffer", "orderNumber": str(order_number)}
        )

    async def return_open_loan_offers(self) -> dict[str, Any]:
        """Returns your open loan offers for each currency."""
        return await self._post(command={"command": "returnOpenLoanOffers"})

    async def return_active_loans(self) -> dict[str, Any]:
        """Returns your active loans for each currency."""
        return await self._post(command={"command": "returnActiveLoans"})

    async def return_lending_history(
        self, start: Timestamp, end: Timestamp, limit: int | None = None
    ) -> list[dict[str, Any]]:
        """Returns your lending history within a range.

        Args:
            start: Start of the range.
            end: End of the range.
            limit: Maximum number of rows to return.
        """
        command = {
            "command": "returnLendingHistory",
            "start": self._seconds(start),
            "end": self._seconds(end),
        }
        if limit:
            command["limit"] = str(limit)
        return await self._post(command=command)

    async def toggle_auto_renew(self, order_number: int) -> dict[str, Any]:
        """Toggles the auto-renew setting on an active loan."""
        return await self._post(
            command={"command": "toggleAutoRenew", "orderNumber": str(order_number)}
        )
