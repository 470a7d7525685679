"""
Premium time series - realized net premium bucketed by week and by month
"""
import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List

import pandas as pd

from calculations import PremiumCalculator, round_cents
from data_access import DataAccess
from models import Call

logger = logging.getLogger(__name__)


def week_start(day: date) -> date:
    """Sunday that starts the week containing `day`"""
    # date.weekday(): Monday=0 .. Sunday=6; Sunday-first offset is (weekday + 1) % 7
    return day - timedelta(days=(day.weekday() + 1) % 7)


class PremiumSeriesCalculator:
    """Weekly and monthly realized premium with running totals"""

    @staticmethod
    def _settled_frame(calls: Iterable[Call]) -> pd.DataFrame:
        """
        One row per non-open call: settlement date and net premium

        Settlement date is the close date if present, else the open date.
        Rows whose chosen date cannot be parsed are dropped.
        """
        rows = []
        for c in DataAccess.non_open_calls(calls):
            raw = DataAccess.settlement_date_raw(c)
            settled = DataAccess.parse_date(raw)
            if settled is None:
                logger.warning(f"Skipping call {c.id} from premium series: unparseable date {raw!r}")
                continue
            rows.append({'date': settled, 'net': PremiumCalculator.net_premium(c)})
        return pd.DataFrame(rows, columns=['date', 'net'])

    @staticmethod
    def _bucketed(df: pd.DataFrame, key_name: str) -> List[Dict]:
        if df.empty:
            return []
        totals = df.groupby('bucket', sort=True)['net'].sum()
        cumulative = totals.cumsum()
        return [
            {key_name: bucket, 'amount': round_cents(amount), 'cumulative': round_cents(cumulative[bucket])}
            for bucket, amount in totals.items()
        ]

    @staticmethod
    def premium_by_week(calls: Iterable[Call]) -> List[Dict]:
        """
        Net premium per Sunday-start week, ascending, with cumulative total

        Returns:
            [{'week': 'YYYY-MM-DD', 'amount': float, 'cumulative': float}]
        """
        df = PremiumSeriesCalculator._settled_frame(calls)
        if not df.empty:
            df['bucket'] = df['date'].map(lambda d: week_start(d).isoformat())
        return PremiumSeriesCalculator._bucketed(df, 'week')

    @staticmethod
    def premium_by_month(calls: Iterable[Call]) -> List[Dict]:
        """
        Net premium per calendar month, ascending, with cumulative total

        Returns:
            [{'month': 'YYYY-MM', 'amount': float, 'cumulative': float}]
        """
        df = PremiumSeriesCalculator._settled_frame(calls)
        if not df.empty:
            df['bucket'] = df['date'].map(lambda d: d.strftime('%Y-%m'))
        return PremiumSeriesCalculator._bucketed(df, 'month')

    @staticmethod
    def weekly_pl(calls: Iterable[Call], today: date) -> Dict:
        """
        Premium realized since the start of the current (Sunday-start) week

        Returns:
            dict with 'week_start', 'premium', 'trades' (terminal calls settled
            this week) and 'calls_written' (calls opened this week)
        """
        start = week_start(today)
        calls = list(calls)

        settled = []
        for c in DataAccess.non_open_calls(calls):
            settled_on = DataAccess.parse_date(DataAccess.settlement_date_raw(c))
            if settled_on is not None and settled_on >= start:
                settled.append(c)

        written = 0
        for c in calls:
            opened = DataAccess.parse_date(c.date_opened)
            if opened is not None and opened >= start:
                written += 1

        return {
            'week_start': start.isoformat(),
            'premium': round_cents(sum(PremiumCalculator.net_premium(c) for c in settled)),
            'trades': len(settled),
            'calls_written': written
        }
