"""
PaperDesk Domain Model

Holdings, transactions, portfolio state and quote records shared by the
ledger, the price feed and the valuation functions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class TradeSide(str, Enum):
    """Trade directions."""
    BUY = "BUY"
    SELL = "SELL"


class QuoteErrorReason(str, Enum):
    """Why a symbol has no fresh quote in the current cycle."""
    DATA_UNAVAILABLE = "Data Unavailable"
    API_ERROR = "API Error"
    NETWORK_ERROR = "Network Error"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Holding:
    """Position in one symbol. Only exists while quantity > 0."""
    quantity: float
    average_cost: float

    @property
    def cost_basis(self) -> float:
        return self.quantity * self.average_cost

    def to_dict(self) -> Dict[str, float]:
        return {"quantity": self.quantity, "average_cost": self.average_cost}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Holding":
        # Older records used "avgCost"
        avg = data.get("average_cost", data.get("avgCost", 0.0))
        return cls(quantity=float(data["quantity"]), average_cost=float(avg))


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger entry created by a successful trade."""
    id: int
    kind: TradeSide
    symbol: str
    quantity: float
    price: float
    total: float
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind.value,
            "symbol": self.symbol,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            id=int(data["id"]),
            kind=TradeSide(data.get("type", data.get("kind"))),
            symbol=data["symbol"],
            quantity=float(data["quantity"]),
            price=float(data["price"]),
            total=float(data["total"]),
            timestamp=parse_timestamp(data["timestamp"]),
        )


@dataclass
class PortfolioState:
    """Cash, holdings and the most-recent-first transaction log."""
    cash: float = 100000.0
    holdings: Dict[str, Holding] = field(default_factory=dict)
    transactions: List[Transaction] = field(default_factory=list)

    def copy(self) -> "PortfolioState":
        return PortfolioState(
            cash=self.cash,
            holdings={s: Holding(h.quantity, h.average_cost) for s, h in self.holdings.items()},
            transactions=list(self.transactions),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cash": self.cash,
            "holdings": {s: h.to_dict() for s, h in self.holdings.items()},
            "transactions": [tx.to_dict() for tx in self.transactions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortfolioState":
        return cls(
            cash=float(data.get("cash", data.get("balance", 100000.0))),
            holdings={s: Holding.from_dict(h) for s, h in (data.get("holdings") or {}).items()},
            transactions=[Transaction.from_dict(tx) for tx in (data.get("transactions") or [])],
        )


@dataclass(frozen=True)
class Quote:
    """Price observation for one symbol. Never persisted."""
    symbol: str
    price: float
    change_percent_24h: float = 0.0
    observed_at: datetime = field(default_factory=utc_now)
    tradeable: bool = True


@dataclass(frozen=True)
class QuoteError:
    symbol: str
    reason: QuoteErrorReason


@dataclass(frozen=True)
class HistoryPoint:
    """Chart point: display time, price and the observation instant."""
    time: str
    price: float
    timestamp: datetime


@dataclass
class TickResult:
    """Outcome of one poll cycle."""
    quotes: Dict[str, Quote] = field(default_factory=dict)
    errors: Dict[str, QuoteError] = field(default_factory=dict)
    completed_at: Optional[datetime] = None
