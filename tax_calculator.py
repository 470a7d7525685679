"""
Tax view - holding-period classification and wash-sale flags for settled calls

Both rules are deliberate approximations for a personal tracker:
  - long-term means held more than LONG_TERM_HOLDING_DAYS calendar days
    (a fixed count, not the "more than one year" calendar rule);
  - wash-sale risk is a loss on a call with another call on the same ticker
    opened within WASH_SALE_WINDOW_DAYS of its close. No share-purchase or
    "substantially identical security" test is attempted.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from calculations import PremiumCalculator, round_cents
from config import LONG_TERM_HOLDING_DAYS, WASH_SALE_WINDOW_DAYS
from data_access import DataAccess
from models import Call

logger = logging.getLogger(__name__)

SHORT_TERM = "short-term"
LONG_TERM = "long-term"


@dataclass
class TaxRow:
    """Tax treatment of one settled call"""
    call: Call
    held_days: Optional[int]
    net_premium: float
    treatment: str
    wash_sale_risk: bool


class TaxCalculator:
    """Classify settled calls for the tax view"""

    @staticmethod
    def holding_days(call: Call, today: date) -> Optional[int]:
        """Calendar days from open to close (or today); None if a date is unparseable"""
        opened = DataAccess.parse_date(call.date_opened)
        ended = DataAccess.close_or_today(call, today)
        if opened is None or ended is None:
            return None
        return (ended - opened).days

    @staticmethod
    def treatment(held_days: Optional[int]) -> str:
        # Unknown holding period falls back to short-term
        if held_days is not None and held_days > LONG_TERM_HOLDING_DAYS:
            return LONG_TERM
        return SHORT_TERM

    @staticmethod
    def wash_sale_risk(call: Call, all_calls: Iterable[Call], today: date) -> bool:
        """Loss on this call and another same-ticker call opened within the window of its close"""
        if PremiumCalculator.net_premium(call) >= 0:
            return False
        closed_on = DataAccess.close_or_today(call, today)
        if closed_on is None:
            return False

        for other in DataAccess.calls_for_ticker(all_calls, call.ticker):
            if other.id == call.id:
                continue
            opened = DataAccess.parse_date(other.date_opened)
            if opened is not None and abs((opened - closed_on).days) <= WASH_SALE_WINDOW_DAYS:
                return True
        return False

    @staticmethod
    def classify(calls: Iterable[Call], today: date) -> List[TaxRow]:
        """Tax rows for every non-open call, in snapshot order"""
        calls = list(calls)
        rows = []
        for c in DataAccess.non_open_calls(calls):
            held = TaxCalculator.holding_days(c, today)
            if held is None:
                logger.warning(f"Call {c.id} has an unparseable open/close date; treating as short-term")
            rows.append(TaxRow(
                call=c,
                held_days=held,
                net_premium=PremiumCalculator.net_premium(c),
                treatment=TaxCalculator.treatment(held),
                wash_sale_risk=TaxCalculator.wash_sale_risk(c, calls, today)
            ))
        return rows

    @staticmethod
    def summary(rows: Iterable[TaxRow]) -> dict:
        """Short/long-term net premium totals and wash-sale count"""
        short_total = 0.0
        long_total = 0.0
        flagged = 0
        for row in rows:
            if row.treatment == LONG_TERM:
                long_total += row.net_premium
            else:
                short_total += row.net_premium
            if row.wash_sale_risk:
                flagged += 1
        return {
            'short_term_net': round_cents(short_total),
            'long_term_net': round_cents(long_total),
            'wash_sale_flags': flagged
        }
