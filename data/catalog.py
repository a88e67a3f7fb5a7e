"""
PaperDesk Instrument Catalog

Fixed mapping from tradeable symbol to the quote source's identifier.
Symbols outside the catalog are never queried and never tradeable.
"""

from typing import Dict, Iterable, List, Optional


DEFAULT_CATALOG: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "DOGE": "dogecoin",
    "ADA": "cardano",
    "XRP": "ripple",
    "MATIC": "matic-network",
    "AVAX": "avalanche-2",
}

# Shown in symbol search; DOT and LINK have no quote source mapping
BROWSABLE_SYMBOLS: List[str] = [
    "BTC", "ETH", "SOL", "DOGE", "ADA", "XRP", "MATIC", "AVAX", "DOT", "LINK",
]


class InstrumentCatalog:
    """Symbol to external identifier lookup."""

    def __init__(self, mapping: Optional[Dict[str, str]] = None, browsable: Optional[Iterable[str]] = None):
        self._mapping = dict(DEFAULT_CATALOG if mapping is None else mapping)
        self._browsable = list(BROWSABLE_SYMBOLS if browsable is None else browsable)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)

    @property
    def symbols(self) -> List[str]:
        return list(self._mapping)

    def external_id(self, symbol: str) -> Optional[str]:
        return self._mapping.get(symbol)

    def supported(self, symbols: Iterable[str]) -> List[str]:
        """Catalog members of ``symbols``, deduplicated, input order kept."""
        result: List[str] = []
        for symbol in symbols:
            if symbol in self._mapping and symbol not in result:
                result.append(symbol)
        return result

    def search(self, query: str) -> List[str]:
        """Browsable symbols containing ``query`` (case-insensitive)."""
        needle = (query or "").strip().upper()
        return [s for s in self._browsable if needle in s]
