"""
PaperDesk test fixtures

Fake quote source, manual scheduler trigger and quote helpers shared by
the test suites.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from core.models import Quote
from data.quote_source import QuoteSource
from data.storage import MemoryProfileStore


class FakeQuoteSource(QuoteSource):
    """Replays queued payloads or exceptions, one per fetch."""

    def __init__(self):
        self.responses: List[Any] = []
        self.calls: List[List[str]] = []
        self.closed = False

    def queue(self, *items: Any) -> None:
        self.responses.extend(items)

    async def fetch(self, external_ids) -> Dict[str, Dict[str, Any]]:
        self.calls.append(list(external_ids))
        item = self.responses.pop(0) if self.responses else {}
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class ManualTrigger:
    """Scheduler trigger released by ``fire()`` instead of a timer."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()

    async def __call__(self) -> None:
        await self._queue.get()

    def fire(self) -> None:
        self._queue.put_nowait(None)


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def payload(**prices) -> Dict[str, Dict[str, float]]:
    """``payload(bitcoin=50000)`` -> CoinGecko-shaped response."""
    return {coin: {"usd": price, "usd_24h_change": 1.5} for coin, price in prices.items()}


@pytest.fixture
def make_quote():
    """Factory for quotes with a fixed observation time."""
    def _make(symbol: str = "BTC", price: float = 50000.0, tradeable: bool = True, **kwargs) -> Quote:
        kwargs.setdefault("observed_at", datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))
        return Quote(symbol=symbol, price=price, tradeable=tradeable, **kwargs)
    return _make


@pytest.fixture
def fake_source():
    """Create scripted quote source."""
    return FakeQuoteSource()


@pytest.fixture
def memory_store():
    """Create empty in-memory profile store."""
    return MemoryProfileStore()
