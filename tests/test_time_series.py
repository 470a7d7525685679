"""Unit tests for weekly/monthly premium series and the current-week P&L."""

from datetime import date

from models import CallStatus, Override
from time_series import PremiumSeriesCalculator, week_start


class TestWeekStart:
    def test_midweek_maps_to_sunday(self):
        assert week_start(date(2024, 1, 10)) == date(2024, 1, 7)

    def test_sunday_is_its_own_week(self):
        assert week_start(date(2024, 1, 7)) == date(2024, 1, 7)

    def test_saturday_closes_the_week(self):
        assert week_start(date(2024, 1, 13)) == date(2024, 1, 7)


class TestPremiumByWeek:
    def test_buckets_and_cumulative(self, make_call):
        calls = [
            make_call(id=1, date_closed="2024-01-10"),
            make_call(id=2, premium=1.0, date_closed="2024-01-12"),
            make_call(id=3, status=CallStatus.CLOSED, premium=1.0, close_price=1.5,
                      date_closed="2024-01-15"),
            make_call(id=4, status=CallStatus.OPEN, date_closed=None),
        ]
        assert PremiumSeriesCalculator.premium_by_week(calls) == [
            {'week': '2024-01-07', 'amount': 300.0, 'cumulative': 300.0},
            {'week': '2024-01-14', 'amount': -50.0, 'cumulative': 250.0},
        ]

    def test_open_date_used_without_close_date(self, make_call):
        calls = [make_call(date_opened="2024-02-07", date_closed=None)]
        assert PremiumSeriesCalculator.premium_by_week(calls)[0]['week'] == '2024-02-04'

    def test_unparseable_dates_skipped(self, make_call):
        calls = [
            make_call(id=1, date_closed="2024-01-10"),
            make_call(id=2, date_closed="sometime in March"),
        ]
        series = PremiumSeriesCalculator.premium_by_week(calls)
        assert len(series) == 1
        assert series[0]['amount'] == 200.0

    def test_relative_date_words_skipped(self, make_call):
        calls = [
            make_call(id=1, date_closed="2024-01-10"),
            make_call(id=2, date_closed="now"),
            make_call(id=3, date_closed="today"),
        ]
        series = PremiumSeriesCalculator.premium_by_week(calls)
        assert [row['week'] for row in series] == ['2024-01-07']
        assert series[0]['amount'] == 200.0

    def test_no_settled_calls(self, make_call):
        assert PremiumSeriesCalculator.premium_by_week([]) == []
        assert PremiumSeriesCalculator.premium_by_week([make_call(status=CallStatus.OPEN)]) == []


class TestPremiumByMonth:
    def test_ascending_months(self, make_call):
        calls = [
            make_call(id=1, date_closed="2024-03-02"),
            make_call(id=2, date_closed="2024-01-31"),
            make_call(id=3, date_closed="2024-01-02"),
        ]
        series = PremiumSeriesCalculator.premium_by_month(calls)
        assert [row['month'] for row in series] == ['2024-01', '2024-03']
        assert [row['amount'] for row in series] == [400.0, 200.0]
        assert series[-1]['cumulative'] == 600.0

    def test_rounding_happens_once_at_output(self, make_call):
        """Cumulative totals come from unrounded sums, not from the rounded amounts."""
        calls = [
            make_call(id=1, total_premium=Override(10.004), date_closed="2024-01-15"),
            make_call(id=2, total_premium=Override(10.004), date_closed="2024-02-15"),
            make_call(id=3, total_premium=Override(10.004), date_closed="2024-03-15"),
        ]
        series = PremiumSeriesCalculator.premium_by_month(calls)
        assert [row['amount'] for row in series] == [10.0, 10.0, 10.0]
        assert [row['cumulative'] for row in series] == [10.0, 20.01, 30.01]


class TestWeeklyPL:
    def test_current_week(self, make_call, today):
        calls = [
            make_call(id=1, date_opened="2024-06-01", date_closed="2024-06-10"),
            make_call(id=2, date_opened="2024-06-01", date_closed="2024-06-08"),
            make_call(id=3, status=CallStatus.OPEN, date_opened="2024-06-11", expiration="2024-07-19"),
            make_call(id=4, date_opened="2024-06-09", date_closed="2024-06-14",
                      status=CallStatus.CLOSED, close_price=0.5),
        ]
        pl = PremiumSeriesCalculator.weekly_pl(calls, today)
        assert pl['week_start'] == '2024-06-09'
        assert pl['premium'] == 350.0
        assert pl['trades'] == 2
        assert pl['calls_written'] == 2

    def test_quiet_week(self, today):
        pl = PremiumSeriesCalculator.weekly_pl([], today)
        assert pl == {'week_start': '2024-06-09', 'premium': 0.0, 'trades': 0, 'calls_written': 0}
