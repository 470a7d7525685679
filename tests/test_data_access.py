"""Unit tests for date parsing and record filtering."""

from datetime import date, datetime

import pytest

from data_access import DataAccess


class TestParseDate:
    @pytest.mark.parametrize("value,expected", [
        ("2024-01-05", date(2024, 1, 5)),
        (" 2024-01-05 ", date(2024, 1, 5)),
        ("2024-01-05T15:30:00", date(2024, 1, 5)),
        (date(2024, 1, 5), date(2024, 1, 5)),
        (datetime(2024, 1, 5, 9, 30), date(2024, 1, 5)),
    ])
    def test_accepted(self, value, expected):
        assert DataAccess.parse_date(value) == expected

    @pytest.mark.parametrize("value", ["now", "today", "tomorrow", "Jan 5 2024", "", "  ", "2024-02-31", None, 20240105])
    def test_rejected(self, value):
        """Relative words never resolve against the clock."""
        assert DataAccess.parse_date(value) is None

    def test_days_between_with_relative_word(self):
        assert DataAccess.days_between("2024-01-05", "now") is None


class TestFilters:
    def test_held_tickers_first_seen_order(self, make_position):
        positions = [make_position(id=1, ticker="abc"), make_position(id=2, ticker="XYZ"),
                     make_position(id=3, ticker="ABC")]
        assert DataAccess.held_tickers(positions) == ["ABC", "XYZ"]

    def test_settlement_date_prefers_close(self, make_call):
        assert DataAccess.settlement_date_raw(make_call(date_closed="2024-02-01")) == "2024-02-01"
        assert DataAccess.settlement_date_raw(make_call(date_closed=None)) == "2024-01-05"
