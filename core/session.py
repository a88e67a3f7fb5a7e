"""
PaperDesk Trading Session

Library facade a UI shell drives: wires the price feed, history buffer,
ledger, profile sync and poll scheduler together, and holds the explicit
session context (selected symbol, watch-list) instead of ambient UI state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from config.settings import Settings, get_settings
from core.errors import TradeInProgress
from core.identity import UserDirectory
from core.models import TickResult, TradeSide, Transaction
from core.performance import (
    AccountStats, LeaderboardEntry, Valuation, build_leaderboard, compute_account_stats, valuate
)
from core.portfolio import PortfolioLedger
from core.profile_sync import ProfileSync
from data.catalog import InstrumentCatalog
from data.feeder import PriceFeed, tracked_symbols
from data.history import PriceHistoryBuffer
from data.quote_source import CoinGeckoQuoteSource, QuoteSource
from data.scheduler import PollScheduler, Trigger
from data.storage import ProfileStore, create_profile_store
from utils.logger import session_logger as logger


class SessionState(str, Enum):
    """Session lifecycle states."""
    STOPPED = "stopped"
    RUNNING = "running"
    CLOSED = "closed"


@dataclass
class SessionContext:
    """Per-session view state passed in explicitly."""
    selected_symbol: str = "BTC"
    watchlist: List[str] = field(default_factory=list)


class TradingSession:
    """
    One user's trading session.

    The ledger and the feed never block on each other; they meet only
    through the quote snapshot read at trade and valuation time.
    """

    def __init__(
        self,
        feed: PriceFeed,
        directory: UserDirectory,
        ledger: Optional[PortfolioLedger] = None,
        history: Optional[PriceHistoryBuffer] = None,
        context: Optional[SessionContext] = None,
        trigger: Optional[Trigger] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.feed = feed
        self.directory = directory
        self.ledger = ledger or PortfolioLedger(initial_cash=self.settings.initial_cash)
        self.history = history or PriceHistoryBuffer(max_points=self.settings.history_max_points)
        self.context = context or SessionContext(
            selected_symbol=self.settings.default_symbol,
            watchlist=list(self.settings.default_watchlist),
        )
        self.sync = ProfileSync(directory, self.ledger)
        self.scheduler = PollScheduler(
            self.poll_once,
            interval_seconds=self.settings.poll_interval_seconds,
            trigger=trigger,
        )
        self.state = SessionState.STOPPED
        self._trade_in_progress = False
        self.sync.attach()

    @classmethod
    def create(
        cls,
        store: Optional[ProfileStore] = None,
        source: Optional[QuoteSource] = None,
        catalog: Optional[InstrumentCatalog] = None,
        trigger: Optional[Trigger] = None,
    ) -> "TradingSession":
        """Build a session from settings, with optional overrides."""
        settings = get_settings()
        directory = UserDirectory(store or create_profile_store(), initial_cash=settings.initial_cash)
        feed = PriceFeed(source or CoinGeckoQuoteSource(), catalog=catalog)
        return cls(feed=feed, directory=directory, trigger=trigger, settings=settings)

    @property
    def catalog(self) -> InstrumentCatalog:
        return self.feed.catalog

    def tracked_symbols(self) -> List[str]:
        return tracked_symbols(self.ledger.holdings.keys(), self.context.watchlist, self.context.selected_symbol)

    def select_symbol(self, symbol: str) -> None:
        self.context.selected_symbol = symbol.strip().upper()

    def search(self, query: str) -> List[str]:
        return self.catalog.search(query)

    async def poll_once(self) -> TickResult:
        """One tick over the tracked set; fresh quotes go to the history buffer."""
        result = await self.feed.tick(self.tracked_symbols())
        for symbol, quote in result.quotes.items():
            self.history.append(symbol, quote)
        return result

    def trade(self, kind: TradeSide, symbol: str, quantity: float) -> Transaction:
        """
        Execute against the feed's quote as of now.

        Raises:
            TradeInProgress: another trade is still being applied
            LedgerError: any validation failure from the ledger
        """
        if self._trade_in_progress:
            raise TradeInProgress("A trade is already being applied", symbol=symbol)
        self._trade_in_progress = True
        try:
            return self.ledger.execute_trade(kind, symbol, quantity, self.feed.quote(symbol))
        finally:
            self._trade_in_progress = False

    def buy(self, symbol: str, quantity: float) -> Transaction:
        return self.trade(TradeSide.BUY, symbol, quantity)

    def sell(self, symbol: str, quantity: float) -> Transaction:
        return self.trade(TradeSide.SELL, symbol, quantity)

    def valuation(self) -> Valuation:
        return valuate(self.ledger.snapshot(), self.feed.quotes)

    def stats(self) -> AccountStats:
        snapshot = self.ledger.snapshot()
        equity = valuate(snapshot, self.feed.quotes).total_equity
        return compute_account_stats(snapshot, equity, baseline=self.settings.initial_cash)

    def leaderboard(self) -> List[LeaderboardEntry]:
        return build_leaderboard(self.valuation().total_equity, baseline=self.settings.initial_cash)

    def reset_account(self) -> None:
        """Irreversible; the caller is responsible for confirming with the user."""
        current = self.directory.current_identity()
        self.ledger.reset(user=current.username if current else None)

    async def start(self) -> None:
        if self.state != SessionState.STOPPED:
            logger.warning(f"Cannot start session in state: {self.state.value}")
            return
        self.scheduler.start()
        self.state = SessionState.RUNNING
        logger.system("Trading session started", symbols=self.tracked_symbols())

    async def stop(self) -> None:
        """Stop polling, close the feed and detach from the identity collaborator."""
        if self.state == SessionState.CLOSED:
            return
        await self.scheduler.stop()
        await self.feed.close()
        self.sync.detach()
        self.state = SessionState.CLOSED
        logger.system("Trading session stopped")

    async def __aenter__(self) -> "TradingSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
