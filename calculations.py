"""
Business logic calculations for covered call writing
"""
import logging
import math
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional

from config import (
    CONTRACT_MULTIPLIER,
    CONCENTRATION_HIGH_PCT,
    CONCENTRATION_MEDIUM_PCT,
    CALL_RISK_HIGH_DISTANCE_PCT,
    CALL_RISK_MEDIUM_DISTANCE_PCT,
    SUGGESTED_STRIKE_OFFSETS,
    STRIKE_INCREMENT,
    UPCOMING_EVENTS_LIMIT,
)
from data_access import DataAccess
from models import Call, CalendarEvent, CallStatus, Override, Position, Snapshot

logger = logging.getLogger(__name__)

REALIZED_STATUSES = (CallStatus.CLOSED, CallStatus.EXPIRED, CallStatus.ASSIGNED)


def round_cents(value: Optional[float]) -> Optional[float]:
    """Round to cents, half-up. Only for final output; accumulate unrounded."""
    if value is None:
        return None
    return float(Decimal(repr(float(value))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def lookup_price(prices: Optional[Mapping[str, float]], ticker: str) -> Optional[float]:
    """Live price for a ticker, None when unknown (absent, null or non-positive)"""
    if not prices:
        return None
    price = prices.get(DataAccess.normalize_ticker(ticker))
    if price is None:
        price = prices.get(ticker)
    try:
        price = float(price) if price is not None else None
    except (TypeError, ValueError):
        return None
    if price is None or math.isnan(price) or price <= 0:
        return None
    return price


def annualize(amount: float, capital: float, days: Optional[int]) -> Optional[float]:
    """
    Annualized return as a fraction: (amount / capital) * (365 / days)

    Returns None when capital is zero or days is unknown or not positive.
    """
    if not capital or days is None or days <= 0:
        return None
    return (amount / capital) * (365 / days)


class PremiumCalculator:
    """Gross, close-cost and net premium for a single call"""

    @staticmethod
    def gross_premium(call: Call) -> float:
        """Override total premium if present, else premium * contracts * 100"""
        if isinstance(call.total_premium, Override):
            return call.total_premium.value
        return call.premium * call.contracts * CONTRACT_MULTIPLIER

    @staticmethod
    def close_cost(call: Call) -> float:
        """
        Cost paid to buy the call back

        Override total close cost if present; otherwise closePrice * contracts * 100
        for closed calls and 0 for everything else. Assignment proceeds are
        accounted separately, never as a close cost.
        """
        if isinstance(call.total_close_cost, Override):
            return call.total_close_cost.value
        if call.status == CallStatus.CLOSED:
            return (call.close_price or 0.0) * call.contracts * CONTRACT_MULTIPLIER
        return 0.0

    @staticmethod
    def net_premium(call: Call) -> float:
        return PremiumCalculator.gross_premium(call) - PremiumCalculator.close_cost(call)


class PositionCalculator:
    """Per-ticker roll-ups of shares, cost basis and linked calls"""

    @staticmethod
    def ticker_call_summary(ticker: str, calls: Iterable[Call]) -> Dict:
        """
        Open call count and premium earned (net over non-open calls) for a ticker

        Returns:
            dict with 'open_calls' and 'premium_earned'
        """
        ticker_calls = DataAccess.calls_for_ticker(calls, ticker)
        open_count = sum(1 for c in ticker_calls if c.is_open)
        earned = sum(PremiumCalculator.net_premium(c) for c in ticker_calls if not c.is_open)
        return {'open_calls': open_count, 'premium_earned': earned}

    @staticmethod
    def effective_cost_basis(position: Position, premium_earned: float) -> float:
        """Cost basis per share reduced by premium earned; raw basis when shares is 0"""
        if not position.shares:
            return position.cost_basis
        return (position.cost_basis * position.shares - premium_earned) / position.shares

    @staticmethod
    def ticker_totals(ticker: str, positions: Iterable[Position]) -> Dict:
        """
        Aggregate all lots of a ticker

        Returns:
            dict with 'total_shares', 'total_cost', 'avg_basis' (None without shares)
            and 'earliest_acquired' (date or None)
        """
        lots = DataAccess.positions_for_ticker(positions, ticker)
        total_shares = sum(p.shares for p in lots)
        total_cost = sum(p.total_cost for p in lots)
        acquired = [d for d in (DataAccess.parse_date(p.date_acquired) for p in lots) if d is not None]
        return {
            'total_shares': total_shares,
            'total_cost': total_cost,
            'avg_basis': total_cost / total_shares if total_shares else None,
            'earliest_acquired': min(acquired) if acquired else None
        }

    @staticmethod
    def position_rows(snapshot: Snapshot) -> List[Dict]:
        """One row per position with its linked call activity"""
        rows = []
        for p in snapshot.positions:
            summary = PositionCalculator.ticker_call_summary(p.ticker, snapshot.calls)
            rows.append({
                'id': p.id,
                'ticker': p.ticker,
                'shares': p.shares,
                'cost_basis': p.cost_basis,
                'total_cost': p.total_cost,
                'date_acquired': p.date_acquired,
                'open_calls': summary['open_calls'],
                'premium_earned': round_cents(summary['premium_earned']),
                'effective_basis': round_cents(
                    PositionCalculator.effective_cost_basis(p, summary['premium_earned'])
                )
            })
        return rows


class YieldCalculator:
    """Capital deployed, realized premium, annualized yield and concentration"""

    @staticmethod
    def total_capital_deployed(positions: Iterable[Position]) -> float:
        return sum(p.total_cost for p in positions)

    @staticmethod
    def total_premium_collected(calls: Iterable[Call]) -> float:
        """Net premium over terminal calls; open calls have realized nothing yet"""
        return sum(PremiumCalculator.net_premium(c) for c in calls if c.status in REALIZED_STATUSES)

    @staticmethod
    def days_since_first_call(calls: Iterable[Call], today: date) -> Optional[int]:
        opened = [d for d in (DataAccess.parse_date(c.date_opened) for c in calls) if d is not None]
        if not opened:
            return None
        return (today - min(opened)).days

    @staticmethod
    def annualized_yield(snapshot: Snapshot, today: date) -> float:
        """
        Annualized premium yield on deployed capital, as a fraction

        0 when nothing is deployed, no call has an open date, or the first
        call was opened today (or later).
        """
        capital = YieldCalculator.total_capital_deployed(snapshot.positions)
        premium = YieldCalculator.total_premium_collected(snapshot.calls)
        days = YieldCalculator.days_since_first_call(snapshot.calls, today)
        result = annualize(premium, capital, days)
        return result if result is not None else 0.0

    @staticmethod
    def calculate_concentration(snapshot: Snapshot) -> Dict:
        """
        Per-ticker share of deployed capital and capital utilization

        Returns:
            dict with:
                - positions: [{ticker, value, pct}] sorted by pct descending
                - max_pct: largest pct (0 when nothing held)
                - covered_count / total_unique / utilization_pct
                - warning: {level, ticker, pct, message} for the largest ticker, or None
        """
        tickers = DataAccess.held_tickers(snapshot.positions)
        if not tickers:
            return {
                'positions': [],
                'max_pct': 0.0,
                'covered_count': 0,
                'total_unique': 0,
                'utilization_pct': 0.0,
                'warning': None
            }

        capital = YieldCalculator.total_capital_deployed(snapshot.positions)
        grouped = []
        for ticker in tickers:
            value = sum(p.total_cost for p in DataAccess.positions_for_ticker(snapshot.positions, ticker))
            grouped.append({
                'ticker': ticker,
                'value': value,
                'pct': value / capital if capital else 0.0
            })
        grouped.sort(key=lambda g: g['pct'], reverse=True)

        open_tickers = {DataAccess.normalize_ticker(c.ticker) for c in snapshot.calls if c.is_open}
        covered_count = sum(1 for t in tickers if t in open_tickers)

        top = grouped[0]
        max_pct = top['pct']
        warning = None
        if max_pct > CONCENTRATION_HIGH_PCT:
            warning = {
                'level': 'high',
                'ticker': top['ticker'],
                'pct': max_pct,
                'message': f"{top['ticker']} is {max_pct * 100:.0f}% of your portfolio - heavy concentration risk."
            }
        elif max_pct > CONCENTRATION_MEDIUM_PCT:
            warning = {
                'level': 'medium',
                'ticker': top['ticker'],
                'pct': max_pct,
                'message': f"{top['ticker']} is {max_pct * 100:.0f}% of portfolio - consider diversifying."
            }

        return {
            'positions': grouped,
            'max_pct': max_pct,
            'covered_count': covered_count,
            'total_unique': len(tickers),
            'utilization_pct': covered_count / len(tickers),
            'warning': warning
        }


class RiskCalculator:
    """Live assignment risk for open calls and calendar warnings"""

    @staticmethod
    def distance_to_strike_pct(strike: float, price: Optional[float]) -> Optional[float]:
        """Percent the price must rise to reach the strike; negative when in the money"""
        if not price or not strike:
            return None
        return (strike - price) / price * 100

    @staticmethod
    def classify_call_risk(distance_pct: Optional[float]) -> str:
        if distance_pct is None:
            return 'unknown'
        if distance_pct < 0:
            return 'itm'
        if distance_pct < CALL_RISK_HIGH_DISTANCE_PCT:
            return 'high'
        if distance_pct < CALL_RISK_MEDIUM_DISTANCE_PCT:
            return 'medium'
        return 'low'

    @staticmethod
    def calculate_call_risk(calls: Iterable[Call], prices: Optional[Mapping[str, float]],
                            today: date) -> List[Dict]:
        """
        Risk rows for open calls

        Price comes from the live price map, falling back to the price stored
        on the call. No price means risk 'unknown', never 0% distance.
        """
        rows = []
        for c in DataAccess.open_calls(calls):
            price = lookup_price(prices, c.ticker)
            if price is None and c.current_price and c.current_price > 0:
                price = c.current_price
            dte = DataAccess.days_between(today, c.expiration)
            distance = RiskCalculator.distance_to_strike_pct(c.strike, price)
            rows.append({
                'id': c.id,
                'ticker': c.ticker,
                'strike': c.strike,
                'expiration': c.expiration,
                'dte': dte,
                'expired': dte is not None and dte <= 0,
                'market_price': price,
                'distance_pct': distance,
                'risk': RiskCalculator.classify_call_risk(distance),
                'total_premium': round_cents(PremiumCalculator.gross_premium(c))
            })
        return rows

    @staticmethod
    def earnings_warning(ticker: str, date_opened, expiration, events: Iterable[CalendarEvent],
                         today: date) -> Optional[CalendarEvent]:
        """First earnings event for the ticker dated inside [open date, expiration]"""
        expiry = DataAccess.parse_date(expiration)
        if expiry is None:
            return None
        opened = DataAccess.parse_date(date_opened) or today
        for event in DataAccess.events_for_ticker(events, ticker):
            if event.event_type != 'earnings':
                continue
            event_date = DataAccess.parse_date(event.date)
            if event_date is not None and opened <= event_date <= expiry:
                return event
        return None

    @staticmethod
    def event_warnings(snapshot: Snapshot, today: date) -> List[Dict]:
        """Open calls whose life spans an earnings report"""
        warnings = []
        for c in DataAccess.open_calls(snapshot.calls):
            event = RiskCalculator.earnings_warning(c.ticker, c.date_opened, c.expiration,
                                                    snapshot.events, today)
            if event is not None:
                warnings.append({
                    'call_id': c.id,
                    'ticker': c.ticker,
                    'event_id': event.id,
                    'event_date': event.date,
                    'expiration': c.expiration
                })
        return warnings

    @staticmethod
    def upcoming_events(events: Iterable[CalendarEvent], today: date,
                        limit: int = UPCOMING_EVENTS_LIMIT) -> List[CalendarEvent]:
        """Events on or after today, soonest first"""
        dated = []
        for event in events:
            event_date = DataAccess.parse_date(event.date)
            if event_date is None:
                logger.debug(f"Skipping event {event.id} with unparseable date {event.date!r}")
                continue
            if event_date >= today:
                dated.append((event_date, event))
        dated.sort(key=lambda pair: pair[0])
        return [event for _, event in dated[:limit]]


class TradePreviewCalculator:
    """Payoff figures for a call before it is written"""

    @staticmethod
    def preview(strike: float, premium: float, contracts: int,
                cost_basis: Optional[float] = None, current_price: Optional[float] = None) -> Dict:
        """
        Max gain, max loss and breakeven for writing `contracts` calls

        With a cost basis the figures are relative to the shares' basis,
        otherwise to the current price (if any).
        """
        total_premium = premium * contracts * CONTRACT_MULTIPLIER
        has_basis = cost_basis is not None and cost_basis > 0
        has_price = current_price is not None and current_price > 0

        if has_basis:
            max_gain_per_share = (strike - cost_basis) + premium
            max_gain_total = max_gain_per_share * contracts * CONTRACT_MULTIPLIER
            max_loss_per_share = cost_basis - premium
        else:
            max_gain_per_share = premium
            max_gain_total = total_premium
            max_loss_per_share = current_price - premium if has_price else 0.0

        return {
            'has_data': strike > 0 and premium > 0 and contracts > 0,
            'total_premium': total_premium,
            'max_gain_per_share': max_gain_per_share,
            'max_gain_total': max_gain_total,
            'max_loss_per_share': max_loss_per_share,
            'max_loss_total': max_loss_per_share * contracts * CONTRACT_MULTIPLIER,
            'breakeven': max_loss_per_share
        }

    @staticmethod
    def suggested_strikes(current_price: Optional[float]) -> List[Dict]:
        """Out-of-the-money strikes rounded up to the next strike increment"""
        if not current_price or current_price <= 0:
            return []
        suggestions = []
        for label, multiplier in SUGGESTED_STRIKE_OFFSETS:
            raw = round(current_price * multiplier, 6)
            strike = math.ceil(round(raw / STRIKE_INCREMENT, 6)) * STRIKE_INCREMENT
            suggestions.append({'label': label, 'strike': strike})
        return suggestions
