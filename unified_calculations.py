"""
Unified Calculations - Single Source of Truth
Builds every derived dashboard view from one snapshot, one date and one price map
"""

import logging
from datetime import date
from typing import Dict, List, Mapping, Optional

from calculations import (
    PositionCalculator,
    PremiumCalculator,
    RiskCalculator,
    YieldCalculator,
    round_cents,
)
from config import IV_HIGH, IV_MEDIUM
from data_access import DataAccess
from models import Snapshot
from post_mortem import TradePostMortem
from strategy_comparison import StrategyComparator
from tax_calculator import TaxCalculator
from time_series import PremiumSeriesCalculator

logger = logging.getLogger(__name__)


def iv_level(current_iv: Optional[float]) -> str:
    """High / Medium / Low implied volatility band"""
    iv = current_iv or 0
    if iv >= IV_HIGH:
        return "High"
    if iv >= IV_MEDIUM:
        return "Medium"
    return "Low"


class UnifiedAnalytics:
    """Single entry point for all derived views"""

    @staticmethod
    def summary(snapshot: Snapshot, today: date) -> Dict:
        """
        Headline figures

        Returns:
        {
            'total_capital_deployed': float,
            'total_premium_collected': float,
            'active_calls': int,
            'settled_calls': int,
            'annualized_yield': float   # fraction, 0.5 == 50%
        }
        """
        open_calls = DataAccess.open_calls(snapshot.calls)
        return {
            'total_capital_deployed': round_cents(YieldCalculator.total_capital_deployed(snapshot.positions)),
            'total_premium_collected': round_cents(YieldCalculator.total_premium_collected(snapshot.calls)),
            'active_calls': len(open_calls),
            'settled_calls': len(snapshot.calls) - len(open_calls),
            'annualized_yield': YieldCalculator.annualized_yield(snapshot, today)
        }

    @staticmethod
    def watchlist_rows(snapshot: Snapshot) -> List[Dict]:
        held = set(DataAccess.held_tickers(snapshot.positions))
        return [
            {
                'id': w.id,
                'ticker': w.ticker,
                'sector': w.sector,
                'iv_rank': w.iv_rank,
                'current_iv': w.current_iv,
                'iv_level': iv_level(w.current_iv),
                'in_portfolio': w.ticker in held
            }
            for w in snapshot.watchlist
        ]

    @staticmethod
    def trade_log(snapshot: Snapshot) -> List[Dict]:
        """All calls, newest opened first, with premium figures and post-mortem"""
        rows = []
        for c in snapshot.calls:
            post_mortem = TradePostMortem.analyze(c, snapshot.positions)
            rows.append({
                'id': c.id,
                'ticker': c.ticker,
                'strike': c.strike,
                'contracts': c.contracts,
                'date_opened': c.date_opened,
                'expiration': c.expiration,
                'status': c.status.value,
                'date_closed': c.date_closed,
                'gross_premium': round_cents(PremiumCalculator.gross_premium(c)),
                'close_cost': round_cents(PremiumCalculator.close_cost(c)),
                'net_premium': round_cents(PremiumCalculator.net_premium(c)),
                'verdict': post_mortem.verdict.value if post_mortem else None,
                'post_mortem': post_mortem
            })
        rows.sort(key=lambda r: r['date_opened'] or "", reverse=True)
        return rows

    @staticmethod
    def build_dashboard(snapshot: Snapshot, today: date,
                        prices: Optional[Mapping[str, float]] = None) -> Dict:
        """
        Every derived view for the dashboard

        Args:
            snapshot: Household snapshot
            today: Valuation date (never read from the clock here)
            prices: {ticker: price}; missing tickers are treated as unknown

        Returns:
            dict keyed by view name
        """
        tax_rows = TaxCalculator.classify(snapshot.calls, today)
        comparisons = StrategyComparator.compare_all(snapshot, prices, today)
        priced = sum(1 for c in comparisons if c.market_price is not None)
        logger.debug(f"Built dashboard: {len(snapshot.positions)} positions, "
                     f"{len(snapshot.calls)} calls, {priced} priced tickers")

        return {
            'summary': UnifiedAnalytics.summary(snapshot, today),
            'weekly_pl': PremiumSeriesCalculator.weekly_pl(snapshot.calls, today),
            'premium_by_week': PremiumSeriesCalculator.premium_by_week(snapshot.calls),
            'premium_by_month': PremiumSeriesCalculator.premium_by_month(snapshot.calls),
            'positions': PositionCalculator.position_rows(snapshot),
            'concentration': YieldCalculator.calculate_concentration(snapshot),
            'call_risk': RiskCalculator.calculate_call_risk(snapshot.calls, prices, today),
            'event_warnings': RiskCalculator.event_warnings(snapshot, today),
            'upcoming_events': RiskCalculator.upcoming_events(snapshot.events, today),
            'tax': tax_rows,
            'tax_summary': TaxCalculator.summary(tax_rows),
            'strategy_comparison': comparisons,
            'portfolio_comparison': StrategyComparator.portfolio_totals(comparisons),
            'trade_log': UnifiedAnalytics.trade_log(snapshot),
            'watchlist': UnifiedAnalytics.watchlist_rows(snapshot)
        }
