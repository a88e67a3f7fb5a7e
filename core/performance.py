"""
PaperDesk Performance Metrics

Pure functions over a portfolio snapshot and a quote mapping: market
value, equity, unrealized P&L per holding, account statistics and the
leaderboard.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from core.errors import CostBasisUndefined
from core.models import PortfolioState, Quote, TradeSide

BASELINE_EQUITY = 100000.0

# Static competitor board shown beside the user's own entry
DEFAULT_COMPETITORS: List[Tuple[str, float]] = [
    ("TraderPro", 125430.0),
    ("CryptoKing", 118920.0),
    ("StockMaster", 112500.0),
    ("InvestorAce", 108750.0),
]


@dataclass(frozen=True)
class PositionValuation:
    """Market view of one holding."""
    symbol: str
    quantity: float
    average_cost: float
    last_price: Optional[float]
    market_value: float
    cost_basis: float
    unrealized_pnl: float

    @property
    def has_quote(self) -> bool:
        return self.last_price is not None

    def unrealized_pnl_pct(self) -> float:
        """
        P&L as a fraction of cost basis.

        Raises:
            CostBasisUndefined: cost basis is zero
        """
        if self.cost_basis == 0:
            raise CostBasisUndefined(self.symbol)
        return self.unrealized_pnl / self.cost_basis


@dataclass(frozen=True)
class Valuation:
    cash: float
    holdings_value: float
    total_equity: float
    positions: Dict[str, PositionValuation] = field(default_factory=dict)

    @property
    def unrealized_pnl(self) -> float:
        return sum(p.unrealized_pnl for p in self.positions.values())


@dataclass(frozen=True)
class AccountStats:
    total_trades: int
    holdings_count: int
    all_time_return: float
    # Fraction of transactions that are sells; not a measure of profitability
    sell_ratio: float


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    value: float
    change_pct: float
    is_user: bool = False


def valuate(portfolio: PortfolioState, quotes: Mapping[str, Quote]) -> Valuation:
    """
    Value a portfolio at the given quotes.

    A holding with no quote contributes zero market value but is still
    listed, with ``last_price`` None.
    """
    positions: Dict[str, PositionValuation] = {}
    holdings_value = 0.0

    for symbol, holding in portfolio.holdings.items():
        quote = quotes.get(symbol)
        last_price = quote.price if quote is not None else None
        market_value = holding.quantity * (last_price or 0.0)
        cost_basis = holding.quantity * holding.average_cost
        positions[symbol] = PositionValuation(
            symbol=symbol,
            quantity=holding.quantity,
            average_cost=holding.average_cost,
            last_price=last_price,
            market_value=market_value,
            cost_basis=cost_basis,
            unrealized_pnl=market_value - cost_basis,
        )
        holdings_value += market_value

    return Valuation(
        cash=portfolio.cash,
        holdings_value=holdings_value,
        total_equity=portfolio.cash + holdings_value,
        positions=positions,
    )


def all_time_return(total_equity: float, baseline: float = BASELINE_EQUITY) -> float:
    """Return since account creation as a fraction of the starting balance."""
    return (total_equity - baseline) / baseline


def compute_account_stats(portfolio: PortfolioState, total_equity: float, baseline: float = BASELINE_EQUITY) -> AccountStats:
    total = len(portfolio.transactions)
    sells = sum(1 for tx in portfolio.transactions if tx.kind == TradeSide.SELL)
    return AccountStats(
        total_trades=total,
        holdings_count=len(portfolio.holdings),
        all_time_return=all_time_return(total_equity, baseline),
        sell_ratio=(sells / total) if total else 0.0,
    )


def build_leaderboard(
    total_equity: float,
    competitors: Optional[Sequence[Tuple[str, float]]] = None,
    user_name: str = "You",
    baseline: float = BASELINE_EQUITY,
) -> List[LeaderboardEntry]:
    """Rank the user among competitors by value, highest first."""
    if competitors is None:
        competitors = DEFAULT_COMPETITORS
    rows = [(user_name, total_equity, True)] + [(name, value, False) for name, value in competitors]
    rows.sort(key=lambda row: row[1], reverse=True)
    return [
        LeaderboardEntry(
            rank=idx + 1,
            name=name,
            value=value,
            change_pct=all_time_return(value, baseline) * 100,
            is_user=is_user,
        )
        for idx, (name, value, is_user) in enumerate(rows)
    ]
