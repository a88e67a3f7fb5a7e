"""
PaperDesk Price Feed

Polls the quote source for the tracked symbol set and merges each cycle
into a per-symbol cache of last known quotes and current errors.
"""

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from core.errors import QuoteSourceApiError, QuoteSourceNetworkError
from core.models import Quote, QuoteError, QuoteErrorReason, TickResult, utc_now
from data.catalog import InstrumentCatalog
from data.quote_source import QuoteSource
from utils.logger import feed_logger as logger


def tracked_symbols(holdings: Iterable[str], watchlist: Iterable[str], selected: Optional[str] = None) -> List[str]:
    """Holdings, then watch-list, then the selected symbol, deduplicated in order."""
    result: List[str] = []
    extra = [selected] if selected else []
    for symbol in [*holdings, *watchlist, *extra]:
        if symbol not in result:
            result.append(symbol)
    return result


class PriceFeed:
    """
    Quote cache fed by one batched request per tick.

    A symbol is tradeable only if the most recent tick quoted it. A failed
    or untracked symbol keeps its last price for display but is marked
    untradeable until a fresh success arrives. Errors are recorded per
    symbol and never raised to the caller.
    """

    def __init__(
        self,
        source: QuoteSource,
        catalog: Optional[InstrumentCatalog] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.source = source
        self.catalog = catalog or InstrumentCatalog()
        self._clock = clock
        self._quotes: Dict[str, Quote] = {}
        self._errors: Dict[str, QuoteError] = {}
        self._last_update: Dict[str, datetime] = {}
        self._lock = asyncio.Lock()
        self._closed = False
        self.ticks_completed = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def quotes(self) -> Dict[str, Quote]:
        """Last known quote per symbol, stale ones included."""
        return dict(self._quotes)

    @property
    def errors(self) -> Dict[str, QuoteError]:
        return dict(self._errors)

    def quote(self, symbol: str) -> Optional[Quote]:
        return self._quotes.get(symbol)

    def is_tradeable(self, symbol: str) -> bool:
        quote = self._quotes.get(symbol)
        return quote is not None and quote.tradeable and quote.price > 0

    def last_update(self, symbol: str) -> Optional[datetime]:
        return self._last_update.get(symbol)

    async def tick(self, symbols: Iterable[str]) -> TickResult:
        """
        Run one poll cycle for ``symbols``.

        Only catalog symbols are requested. Ticks are serialized; a tick
        finishing after ``close()`` is discarded.
        """
        if self._closed:
            return TickResult()

        async with self._lock:
            requested = self.catalog.supported(symbols)
            if requested:
                result = await self._fetch(requested)
            else:
                result = TickResult(completed_at=self._clock())

            if self._closed:
                logger.debug("Feed closed during tick; discarding result")
                return TickResult()

            self._merge(result)
            self.ticks_completed += 1

        logger.data(
            f"Tick complete: {len(result.quotes)} quotes, {len(result.errors)} errors",
            data_type="tick",
            quoted=sorted(result.quotes),
            errored=sorted(result.errors),
        )
        return result

    async def _fetch(self, requested: List[str]) -> TickResult:
        ids = {symbol: self.catalog.external_id(symbol) for symbol in requested}
        result = TickResult()

        try:
            payload = await self.source.fetch(list(ids.values()))
        except QuoteSourceNetworkError as e:
            logger.warning(f"Network error fetching quotes: {e}", symbols=requested)
            result.errors = self._errors_for(requested, QuoteErrorReason.NETWORK_ERROR)
        except QuoteSourceApiError as e:
            logger.warning(f"API error fetching quotes: {e}", symbols=requested, status=e.status)
            result.errors = self._errors_for(requested, QuoteErrorReason.API_ERROR)
        else:
            observed_at = self._clock()
            for symbol, external_id in ids.items():
                quote = self._parse_entry(symbol, payload.get(external_id), observed_at)
                if quote is None:
                    result.errors[symbol] = QuoteError(symbol, QuoteErrorReason.DATA_UNAVAILABLE)
                else:
                    result.quotes[symbol] = quote

        result.completed_at = self._clock()
        return result

    @staticmethod
    def _errors_for(symbols: List[str], reason: QuoteErrorReason) -> Dict[str, QuoteError]:
        return {symbol: QuoteError(symbol, reason) for symbol in symbols}

    @staticmethod
    def _parse_entry(symbol: str, entry: Any, observed_at: datetime) -> Optional[Quote]:
        if not isinstance(entry, dict):
            return None
        price = entry.get("usd")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or not price > 0:
            return None
        change = entry.get("usd_24h_change")
        if isinstance(change, bool) or not isinstance(change, (int, float)):
            change = 0.0
        return Quote(
            symbol=symbol,
            price=float(price),
            change_percent_24h=float(change),
            observed_at=observed_at,
            tradeable=True,
        )

    def _merge(self, result: TickResult) -> None:
        for symbol, quote in result.quotes.items():
            self._quotes[symbol] = quote
            self._errors.pop(symbol, None)
            self._last_update[symbol] = quote.observed_at

        for symbol, error in result.errors.items():
            self._errors[symbol] = error

        # Only symbols quoted in this tick stay tradeable
        for symbol, cached in list(self._quotes.items()):
            if symbol not in result.quotes and cached.tradeable:
                self._quotes[symbol] = replace(cached, tradeable=False)

    async def close(self) -> None:
        """Stop accepting tick results and release the quote source."""
        if self._closed:
            return
        self._closed = True
        await self.source.close()
        logger.system("Price feed closed")
