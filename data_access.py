"""
Unified Data Access Layer
Consistent record filtering, ticker matching and date parsing over a snapshot
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import TYPE_CHECKING, Iterable, List, Optional

import pandas as pd

if TYPE_CHECKING:
    from models import CalendarEvent, Call, Position

ISO_DATE_PREFIX = re.compile(r'^\d{4}-\d{2}-\d{2}(?:$|[T ])')


class DataAccess:
    """Unified data access layer with consistent ticker and date handling"""

    @staticmethod
    def normalize_ticker(ticker) -> str:
        """Tickers compare case-insensitively; stored uppercase"""
        if ticker is None:
            return ""
        return str(ticker).strip().upper()

    @staticmethod
    def parse_date(value) -> Optional[date]:
        """
        Parse a stored date value

        Accepts date/datetime objects and strings starting YYYY-MM-DD. Anything
        else (including relative words like "now" or "today") comes back as
        None instead of raising.
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if not isinstance(value, str) or not ISO_DATE_PREFIX.match(value.strip()):
            return None

        parsed = pd.to_datetime(value.strip(), errors='coerce')
        if pd.isna(parsed):
            return None
        return parsed.date()

    @staticmethod
    def days_between(start, end) -> Optional[int]:
        """Whole calendar days from start to end, None if either is unparseable"""
        start_date = DataAccess.parse_date(start)
        end_date = DataAccess.parse_date(end)
        if start_date is None or end_date is None:
            return None
        return (end_date - start_date).days

    @staticmethod
    def settlement_date_raw(call: "Call"):
        """Close date if the call carries one, else its open date (raw value)"""
        return call.date_closed if call.date_closed else call.date_opened

    @staticmethod
    def close_or_today(call: "Call", today: date) -> Optional[date]:
        """Close date for terminal calls; today when no close date was recorded"""
        if call.date_closed:
            return DataAccess.parse_date(call.date_closed)
        return today

    @staticmethod
    def open_calls(calls: Iterable["Call"]) -> List["Call"]:
        """Calls still open"""
        return [c for c in calls if c.is_open]

    @staticmethod
    def non_open_calls(calls: Iterable["Call"]) -> List["Call"]:
        """Calls in a terminal state (expired, closed, assigned)"""
        return [c for c in calls if not c.is_open]

    @staticmethod
    def calls_for_ticker(calls: Iterable["Call"], ticker: str) -> List["Call"]:
        """Filter calls by ticker"""
        key = DataAccess.normalize_ticker(ticker)
        return [c for c in calls if DataAccess.normalize_ticker(c.ticker) == key]

    @staticmethod
    def positions_for_ticker(positions: Iterable["Position"], ticker: str) -> List["Position"]:
        """Filter positions by ticker"""
        key = DataAccess.normalize_ticker(ticker)
        return [p for p in positions if DataAccess.normalize_ticker(p.ticker) == key]

    @staticmethod
    def events_for_ticker(events: Iterable["CalendarEvent"], ticker: str) -> List["CalendarEvent"]:
        """Filter calendar events by ticker"""
        key = DataAccess.normalize_ticker(ticker)
        return [e for e in events if DataAccess.normalize_ticker(e.ticker) == key]

    @staticmethod
    def held_tickers(positions: Iterable["Position"]) -> List[str]:
        """Distinct held tickers, uppercase, in first-seen order"""
        seen = []
        for p in positions:
            ticker = DataAccess.normalize_ticker(p.ticker)
            if ticker and ticker not in seen:
                seen.append(ticker)
        return seen

    @staticmethod
    def find_call(calls: Iterable["Call"], call_id: int) -> Optional["Call"]:
        for c in calls:
            if c.id == call_id:
                return c
        return None

    @staticmethod
    def find_position(positions: Iterable["Position"], position_id: int) -> Optional["Position"]:
        for p in positions:
            if p.id == position_id:
                return p
        return None
