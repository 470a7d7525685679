"""Shared fixtures for the covered call ledger tests."""

from datetime import date

import pytest

from models import COMPUTED, CalendarEvent, Call, CallStatus, Position, Snapshot


TODAY = date(2024, 6, 15)  # a Saturday


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_call():
    """Factory for Call records with covered-call defaults."""
    def _make(id=1, ticker="XYZ", strike=55.0, premium=2.0, contracts=1,
              date_opened="2024-01-05", expiration="2024-02-02",
              status=CallStatus.EXPIRED, date_closed=None, close_price=None,
              total_premium=COMPUTED, total_close_cost=COMPUTED, current_price=None):
        return Call(
            id=id,
            ticker=ticker,
            strike=strike,
            premium=premium,
            contracts=contracts,
            date_opened=date_opened,
            expiration=expiration,
            status=status,
            date_closed=date_closed,
            close_price=close_price,
            total_premium=total_premium,
            total_close_cost=total_close_cost,
            current_price=current_price,
        )
    return _make


@pytest.fixture
def make_position():
    def _make(id=100, ticker="XYZ", shares=100, cost_basis=50.0, date_acquired="2024-01-01"):
        return Position(id=id, ticker=ticker, shares=shares, cost_basis=cost_basis,
                        date_acquired=date_acquired)
    return _make


@pytest.fixture
def make_event():
    def _make(id=200, ticker="XYZ", event_type="earnings", date="2024-06-20", description=""):
        return CalendarEvent(id=id, ticker=ticker, event_type=event_type, date=date,
                             description=description)
    return _make


@pytest.fixture
def xyz_snapshot(make_call, make_position):
    """100 XYZ @ 50 with one expired 55 call written for $2."""
    return Snapshot(
        positions=(make_position(id=1),),
        calls=(make_call(id=2),),
        next_id=3,
    )
