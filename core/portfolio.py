"""
PaperDesk Portfolio Ledger

Owns the cash balance, per-symbol holdings with weighted average cost and
the append-only transaction log. Trades are validated in full before any
state changes, so a rejected trade never leaves a partial effect.
"""

import time
from typing import Callable, Dict, List, Optional

from core.errors import (
    InsufficientCash, InsufficientHoldings, InvalidQuantity, UntradeableSymbol
)
from core.models import Holding, PortfolioState, Quote, TradeSide, Transaction, utc_now
from utils.logger import create_audit_log, ledger_logger as logger, log_trade

DEFAULT_INITIAL_CASH = 100000.0

MutationListener = Callable[[PortfolioState], None]


class PortfolioLedger:
    """
    Single owner of one identity's PortfolioState.

    Listeners registered with ``add_listener`` receive a snapshot after each
    mutation (trade or reset), in mutation order.
    """

    def __init__(self, initial_cash: float = DEFAULT_INITIAL_CASH, state: Optional[PortfolioState] = None):
        self.initial_cash = initial_cash
        self._state = PortfolioState(cash=initial_cash)
        self._listeners: List[MutationListener] = []
        self._last_tx_id = 0
        if state is not None:
            self.load(state)

    @property
    def cash(self) -> float:
        return self._state.cash

    @property
    def holdings(self) -> Dict[str, Holding]:
        return {s: Holding(h.quantity, h.average_cost) for s, h in self._state.holdings.items()}

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._state.transactions)

    def snapshot(self) -> PortfolioState:
        return self._state.copy()

    def holding(self, symbol: str) -> Optional[Holding]:
        h = self._state.holdings.get(symbol)
        return Holding(h.quantity, h.average_cost) if h else None

    def add_listener(self, listener: MutationListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def load(self, state: PortfolioState) -> None:
        """
        Replace in-memory state with a stored snapshot.

        Does not notify listeners. Holdings with non-positive quantity are
        dropped, and new transaction ids continue above the loaded ones.
        """
        loaded = state.copy()
        dropped = [s for s, h in loaded.holdings.items() if h.quantity <= 0]
        for symbol in dropped:
            del loaded.holdings[symbol]
        if dropped:
            logger.warning(f"Dropped empty holdings on load: {', '.join(dropped)}")

        self._state = loaded
        self._last_tx_id = max([tx.id for tx in loaded.transactions], default=self._last_tx_id)
        logger.info(
            f"Portfolio loaded: cash=${loaded.cash:,.2f}, "
            f"{len(loaded.holdings)} holdings, {len(loaded.transactions)} transactions"
        )

    def execute_trade(self, kind: TradeSide, symbol: str, quantity: float, quote: Optional[Quote]) -> Transaction:
        """
        Apply a buy or sell at the quote's price.

        Args:
            kind: BUY or SELL
            symbol: Symbol to trade
            quantity: Units, must be > 0
            quote: Quote snapshot taken at trade time

        Returns:
            Transaction: The entry prepended to the log

        Raises:
            InvalidQuantity, UntradeableSymbol, InsufficientCash, InsufficientHoldings
        """
        kind = TradeSide(kind)
        self._validate_quantity(symbol, quantity)
        price = self._validate_quote(symbol, quote)
        total = quantity * price

        if kind == TradeSide.BUY:
            if total > self._state.cash:
                logger.rejected("insufficient cash", symbol=symbol, required=total, available=self._state.cash)
                raise InsufficientCash(symbol, total, self._state.cash)
            self._apply_buy(symbol, quantity, price, total)
        else:
            existing = self._state.holdings.get(symbol)
            held = existing.quantity if existing else 0.0
            if existing is None or held < quantity:
                logger.rejected("insufficient holdings", symbol=symbol, requested=quantity, held=held)
                raise InsufficientHoldings(symbol, quantity, held)
            self._apply_sell(symbol, quantity, total)

        tx = Transaction(
            id=self._next_tx_id(),
            kind=kind,
            symbol=symbol,
            quantity=quantity,
            price=price,
            total=total,
            timestamp=utc_now(),
        )
        self._state.transactions.insert(0, tx)

        log_trade(symbol, kind.value, quantity, price, transaction_id=tx.id, cash_after=self._state.cash)
        self._notify()
        return tx

    def buy(self, symbol: str, quantity: float, quote: Optional[Quote]) -> Transaction:
        return self.execute_trade(TradeSide.BUY, symbol, quantity, quote)

    def sell(self, symbol: str, quantity: float, quote: Optional[Quote]) -> Transaction:
        return self.execute_trade(TradeSide.SELL, symbol, quantity, quote)

    def reset(self, user: Optional[str] = None) -> None:
        """Restore initial cash and clear holdings and transactions. Irreversible."""
        self._state = PortfolioState(cash=self.initial_cash)
        create_audit_log(
            action="reset",
            component="ledger",
            result="success",
            details={"cash": self.initial_cash},
            user=user,
        )
        self._notify()

    def clear(self) -> None:
        """Drop in-memory state without notifying listeners (identity went away)."""
        self._state = PortfolioState(cash=self.initial_cash)
        self._last_tx_id = 0

    def _validate_quantity(self, symbol: str, quantity: float) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
            raise InvalidQuantity(f"Quantity must be a number, got {quantity!r}", symbol=symbol)
        # NaN fails this comparison too
        if not quantity > 0:
            raise InvalidQuantity(f"Quantity must be positive, got {quantity}", symbol=symbol)

    def _validate_quote(self, symbol: str, quote: Optional[Quote]) -> float:
        if quote is None or quote.symbol != symbol:
            logger.rejected("no quote", symbol=symbol)
            raise UntradeableSymbol(f"No current quote for {symbol}", symbol=symbol)
        if not quote.tradeable:
            logger.rejected("stale quote", symbol=symbol)
            raise UntradeableSymbol(f"Trading is currently unavailable for {symbol}", symbol=symbol)
        if not quote.price > 0:
            logger.rejected("unpriced quote", symbol=symbol, price=quote.price)
            raise UntradeableSymbol(f"Quote for {symbol} has no valid price", symbol=symbol)
        return float(quote.price)

    def _apply_buy(self, symbol: str, quantity: float, price: float, total: float) -> None:
        existing = self._state.holdings.get(symbol)
        if existing is None:
            new_holding = Holding(quantity=quantity, average_cost=price)
        else:
            new_qty = existing.quantity + quantity
            new_avg = (existing.average_cost * existing.quantity + total) / new_qty
            new_holding = Holding(quantity=new_qty, average_cost=new_avg)
        self._state.cash -= total
        self._state.holdings[symbol] = new_holding

    def _apply_sell(self, symbol: str, quantity: float, total: float) -> None:
        existing = self._state.holdings[symbol]
        remaining = existing.quantity - quantity
        self._state.cash += total
        if remaining == 0:
            del self._state.holdings[symbol]
        else:
            # Average cost is untouched by a sell
            self._state.holdings[symbol] = Holding(quantity=remaining, average_cost=existing.average_cost)

    def _next_tx_id(self) -> int:
        self._last_tx_id = max(self._last_tx_id + 1, time.time_ns() // 1000)
        return self._last_tx_id

    def _notify(self) -> None:
        snapshot = self._state.copy()
        for listener in list(self._listeners):
            listener(snapshot)
