"""
Trade post-mortem - outcome verdict for a single settled call
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from calculations import PositionCalculator, PremiumCalculator, annualize
from config import CONTRACT_MULTIPLIER
from data_access import DataAccess
from models import Call, CallStatus, Position


class Verdict(str, Enum):
    FULL_WIN = "FullWin"
    PARTIAL_WIN = "PartialWin"
    LOSS = "Loss"
    ASSIGNED = "Assigned"


class AssignmentBasis(str, Enum):
    ABOVE_BASIS = "above_basis"
    BELOW_BASIS = "below_basis"
    UNKNOWN = "unknown"


# Narrative keys the presentation layer maps to copy
NARRATIVE_EXPIRED_WORTHLESS = "expired_worthless"
NARRATIVE_ASSIGNED_ABOVE_BASIS = "assigned_above_basis"
NARRATIVE_ASSIGNED_BELOW_BASIS = "assigned_below_basis"
NARRATIVE_ASSIGNED = "assigned"
NARRATIVE_CLOSED_EARLY = "closed_early_profit"
NARRATIVE_CLOSED_AT_LOSS = "closed_at_loss"


@dataclass
class PostMortem:
    call_id: int
    ticker: str
    verdict: Verdict
    assignment_basis: Optional[AssignmentBasis]
    narrative: str
    gross_premium: float
    close_cost: float
    net_premium: float
    held_days: Optional[int]
    premium_retained_pct: float
    cost_basis: Optional[float]
    annualized_return: Optional[float]


class TradePostMortem:
    """Classify how a settled call turned out"""

    @staticmethod
    def held_days(call: Call) -> Optional[int]:
        # Open date to close date, or to expiration when no close date was logged
        end = call.date_closed if call.date_closed else call.expiration
        return DataAccess.days_between(call.date_opened, end)

    @staticmethod
    def analyze(call: Call, positions: Iterable[Position]) -> Optional[PostMortem]:
        """
        Verdict, premium retained and annualized return for a non-open call

        Cost basis is the average basis across all lots of the ticker; with no
        matching position every basis-relative figure is None. Open calls have
        no post-mortem.
        """
        if call.is_open:
            return None

        gross = PremiumCalculator.gross_premium(call)
        close_cost = PremiumCalculator.close_cost(call)
        net = gross - close_cost
        held = TradePostMortem.held_days(call)
        retained = (net / gross) * 100 if gross else 0.0

        cost_basis = PositionCalculator.ticker_totals(call.ticker, positions)['avg_basis']
        annualized = None
        if cost_basis:
            annualized = annualize(net, cost_basis * call.contracts * CONTRACT_MULTIPLIER, held)

        assignment_basis = None
        if call.status == CallStatus.EXPIRED:
            verdict, narrative = Verdict.FULL_WIN, NARRATIVE_EXPIRED_WORTHLESS
        elif call.status == CallStatus.ASSIGNED:
            verdict = Verdict.ASSIGNED
            if cost_basis is None:
                assignment_basis, narrative = AssignmentBasis.UNKNOWN, NARRATIVE_ASSIGNED
            elif call.strike >= cost_basis:
                assignment_basis, narrative = AssignmentBasis.ABOVE_BASIS, NARRATIVE_ASSIGNED_ABOVE_BASIS
            else:
                assignment_basis, narrative = AssignmentBasis.BELOW_BASIS, NARRATIVE_ASSIGNED_BELOW_BASIS
        elif net > 0:
            verdict, narrative = Verdict.PARTIAL_WIN, NARRATIVE_CLOSED_EARLY
        else:
            verdict, narrative = Verdict.LOSS, NARRATIVE_CLOSED_AT_LOSS

        return PostMortem(
            call_id=call.id,
            ticker=call.ticker,
            verdict=verdict,
            assignment_basis=assignment_basis,
            narrative=narrative,
            gross_premium=gross,
            close_cost=close_cost,
            net_premium=net,
            held_days=held,
            premium_retained_pct=retained,
            cost_basis=cost_basis,
            annualized_return=annualized
        )
