"""
PaperDesk Errors

Exception taxonomy for ledger, valuation, storage and identity failures.
Ledger errors are raised synchronously to the caller for user-facing
rejection; quote failures are never raised, they are recorded per symbol.
"""

from typing import Optional


class PaperDeskError(Exception):
    """Base class for all PaperDesk errors."""


class LedgerError(PaperDeskError):
    """A trade intent was rejected; ledger state is unchanged."""

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message)
        self.symbol = symbol


class InvalidQuantity(LedgerError, ValueError):
    """Trade quantity is not a positive number."""


class UntradeableSymbol(LedgerError):
    """No fresh, priced, tradeable quote exists for the symbol."""


class InsufficientCash(LedgerError):
    """Buy total exceeds the available cash balance."""

    def __init__(self, symbol: str, required: float, available: float):
        super().__init__(
            f"Insufficient cash for {symbol}: need ${required:,.2f}, have ${available:,.2f}",
            symbol=symbol,
        )
        self.required = required
        self.available = available


class InsufficientHoldings(LedgerError):
    """Sell quantity exceeds the units held."""

    def __init__(self, symbol: str, requested: float, held: float):
        super().__init__(
            f"Insufficient holdings for {symbol}: requested {requested:g}, held {held:g}",
            symbol=symbol,
        )
        self.requested = requested
        self.held = held


class TradeInProgress(LedgerError):
    """Another trade is still being applied to the same portfolio."""


class CostBasisUndefined(PaperDeskError, ArithmeticError):
    """P&L percentage requested for a position with zero cost basis."""

    def __init__(self, symbol: str):
        super().__init__(f"Cost basis for {symbol} is zero; P&L percentage is undefined")
        self.symbol = symbol


class QuoteSourceError(PaperDeskError):
    """Raised by quote sources; the feed converts these to per-symbol records."""


class QuoteSourceNetworkError(QuoteSourceError):
    """Transport-level failure reaching the quote source."""


class QuoteSourceApiError(QuoteSourceError):
    """Quote source answered with a non-success response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class StorageError(PaperDeskError):
    """The profile store could not read or write a record."""


class IdentityError(PaperDeskError):
    """Base class for identity collaborator failures."""


class UserAlreadyExists(IdentityError):
    """Signup attempted with an email that is already registered."""


class InvalidCredentials(IdentityError):
    """Login attempted with an unknown email or wrong password."""
