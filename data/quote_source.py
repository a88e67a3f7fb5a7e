"""
PaperDesk Quote Source

HTTP client for the external price endpoint. One batched request per call;
transport failures and non-success responses are raised as typed errors so
the price feed can classify them per symbol.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

import aiohttp

from config.settings import get_settings
from core.errors import QuoteSourceApiError, QuoteSourceNetworkError
from utils.logger import feed_logger as logger


class QuoteSource(ABC):
    """Fetches raw price payloads keyed by external identifier."""

    @abstractmethod
    async def fetch(self, external_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """
        Fetch prices for a batch of identifiers.

        Returns:
            Dict[str, Dict[str, Any]]: ``{id: {"usd": price, "usd_24h_change": pct}}``;
            identifiers without data are simply absent

        Raises:
            QuoteSourceNetworkError: Request never produced a response
            QuoteSourceApiError: Response was not a success
        """
        ...

    async def close(self) -> None:
        return None


class CoinGeckoQuoteSource(QuoteSource):
    """
    CoinGecko ``simple/price`` client.

    The aiohttp session is created lazily and owned by this object unless
    one is passed in.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        vs_currency: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.quote_source_url
        self.timeout = timeout or settings.quote_request_timeout
        self.vs_currency = vs_currency or settings.quote_vs_currency
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    def build_params(self, external_ids: Iterable[str]) -> Dict[str, str]:
        return {
            "ids": ",".join(external_ids),
            "vs_currencies": self.vs_currency,
            "include_24hr_change": "true",
        }

    async def fetch(self, external_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(external_ids)
        if not ids:
            return {}

        session = self._get_session()
        try:
            async with session.get(self.base_url, params=self.build_params(ids)) as response:
                if response.status != 200:
                    logger.warning(f"Quote source API error: {response.status}")
                    raise QuoteSourceApiError(f"Quote source returned HTTP {response.status}", status=response.status)
                try:
                    payload = await response.json()
                except (aiohttp.ContentTypeError, ValueError) as e:
                    raise QuoteSourceApiError(f"Quote source returned an undecodable body: {e}", status=response.status) from e
        except QuoteSourceApiError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"Quote source fetch error: {e!r}")
            raise QuoteSourceNetworkError(str(e) or type(e).__name__) from e

        if not isinstance(payload, dict):
            raise QuoteSourceApiError("Quote source returned a non-object payload", status=200)
        return payload

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
