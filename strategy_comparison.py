"""
Strategy Comparison - Covered Calls vs Buy & Hold
Per-ticker return of the covered call strategy against simply holding the shares
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Mapping, Optional

from calculations import PositionCalculator, PremiumCalculator, annualize, lookup_price
from config import CONTRACT_MULTIPLIER
from data_access import DataAccess
from models import CallStatus, Snapshot

logger = logging.getLogger(__name__)


@dataclass
class TickerComparison:
    """
    Covered call vs buy & hold for one ticker

    Price-dependent fields are None when no market price is known; None
    means "unknown", not zero.
    """
    ticker: str
    total_shares: int
    shares_still_held: int
    total_cost: float
    avg_basis: Optional[float]
    market_price: Optional[float]
    gross_premium: float
    net_premium: float
    assigned_shares: int
    assignment_proceeds: float
    buy_hold_return: Optional[float]
    buy_hold_pct: Optional[float]
    strategy_return: Optional[float]
    strategy_pct: Optional[float]
    alpha: Optional[float]
    alpha_pct: Optional[float]
    days_held: Optional[int]
    premium_yield_pct: float
    premium_annualized: float
    calls_by_status: Dict[str, int] = field(default_factory=dict)


def _pct_of(amount: Optional[float], base: float) -> Optional[float]:
    if amount is None or not base:
        return None
    return amount / base * 100


class StrategyComparator:
    """Compare covered call returns against buy & hold"""

    @staticmethod
    def compare_ticker(ticker: str, snapshot: Snapshot, market_price: Optional[float],
                       today: date) -> TickerComparison:
        """
        Covered call vs buy & hold for a single ticker

        Args:
            ticker: Ticker symbol
            snapshot: Household snapshot
            market_price: Current price, or None if unknown
            today: Valuation date
        """
        totals = PositionCalculator.ticker_totals(ticker, snapshot.positions)
        total_shares = totals['total_shares']
        total_cost = totals['total_cost']

        ticker_calls = DataAccess.calls_for_ticker(snapshot.calls, ticker)
        gross = sum(PremiumCalculator.gross_premium(c) for c in ticker_calls)
        net = sum(PremiumCalculator.net_premium(c) for c in ticker_calls)

        assigned = [c for c in ticker_calls if c.status == CallStatus.ASSIGNED]
        assigned_shares = sum(c.contracts * CONTRACT_MULTIPLIER for c in assigned)
        proceeds = sum(c.strike * c.contracts * CONTRACT_MULTIPLIER for c in assigned)
        shares_still_held = total_shares - assigned_shares

        calls_by_status = {status.value: 0 for status in CallStatus}
        for c in ticker_calls:
            calls_by_status[c.status.value] += 1

        if market_price is not None:
            buy_hold = market_price * total_shares - total_cost
            strategy = market_price * shares_still_held + proceeds + net - total_cost
            alpha = strategy - buy_hold
        else:
            buy_hold = strategy = alpha = None

        buy_hold_pct = _pct_of(buy_hold, total_cost)
        strategy_pct = _pct_of(strategy, total_cost)
        alpha_pct = strategy_pct - buy_hold_pct if strategy_pct is not None and buy_hold_pct is not None else None

        earliest = totals['earliest_acquired']
        days_held = (today - earliest).days if earliest is not None else None

        premium_annualized = annualize(net, total_cost, days_held)

        return TickerComparison(
            ticker=DataAccess.normalize_ticker(ticker),
            total_shares=total_shares,
            shares_still_held=shares_still_held,
            total_cost=total_cost,
            avg_basis=totals['avg_basis'],
            market_price=market_price,
            gross_premium=gross,
            net_premium=net,
            assigned_shares=assigned_shares,
            assignment_proceeds=proceeds,
            buy_hold_return=buy_hold,
            buy_hold_pct=buy_hold_pct,
            strategy_return=strategy,
            strategy_pct=strategy_pct,
            alpha=alpha,
            alpha_pct=alpha_pct,
            days_held=days_held,
            premium_yield_pct=net / total_cost * 100 if total_cost else 0.0,
            premium_annualized=premium_annualized if premium_annualized is not None else 0.0,
            calls_by_status=calls_by_status
        )

    @staticmethod
    def compare_all(snapshot: Snapshot, prices: Optional[Mapping[str, float]], today: date) -> List[TickerComparison]:
        """One comparison per held ticker, in first-held order"""
        comparisons = []
        for ticker in DataAccess.held_tickers(snapshot.positions):
            price = lookup_price(prices, ticker)
            if price is None:
                logger.debug(f"No market price for {ticker}; price-dependent returns left unknown")
            comparisons.append(StrategyComparator.compare_ticker(ticker, snapshot, price, today))
        return comparisons

    @staticmethod
    def portfolio_totals(comparisons: List[TickerComparison]) -> Optional[Dict]:
        """
        Portfolio-wide sums across tickers

        Returns None unless at least one ticker has a known market price, so
        an unpriced portfolio never shows as zero returns. Tickers without a
        price contribute their cost and premium but no return.

        Returns:
        {
            'total_cost': float,
            'net_premium': float,
            'buy_hold_return': float,
            'strategy_return': float,
            'alpha': float,
            'buy_hold_pct': float or None,
            'strategy_pct': float or None,
            'priced_tickers': int,
            'unpriced_tickers': [str]
        }
        """
        priced = [c for c in comparisons if c.market_price is not None]
        if not priced:
            return None

        total_cost = sum(c.total_cost for c in comparisons)
        buy_hold = sum(c.buy_hold_return for c in priced)
        strategy = sum(c.strategy_return for c in priced)

        return {
            'total_cost': total_cost,
            'net_premium': sum(c.net_premium for c in comparisons),
            'buy_hold_return': buy_hold,
            'strategy_return': strategy,
            'alpha': strategy - buy_hold,
            'buy_hold_pct': _pct_of(buy_hold, total_cost),
            'strategy_pct': _pct_of(strategy, total_cost),
            'priced_tickers': len(priced),
            'unpriced_tickers': [c.ticker for c in comparisons if c.market_price is None]
        }
