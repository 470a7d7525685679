"""
Ledger operations - every user action as a pure snapshot -> snapshot function

Each operation returns a brand-new Snapshot; the caller persists it as a
whole. New records take their id from Snapshot.next_id, which only grows.
A roll is a single operation producing one snapshot that holds both the
closed call and its replacement, so persisting it is one write.
"""
import logging
from dataclasses import replace
from datetime import date
from typing import Optional, Tuple

from config import CONTRACT_MULTIPLIER
from data_access import DataAccess
from models import (
    COMPUTED,
    AmountSource,
    CalendarEvent,
    Call,
    CallStatus,
    CallValidator,
    Computed,
    Override,
    Position,
    Snapshot,
    WatchlistEntry,
)

logger = logging.getLogger(__name__)


def _mint_id(snapshot: Snapshot) -> Tuple[int, Snapshot]:
    record_id = snapshot.next_id
    return record_id, replace(snapshot, next_id=record_id + 1)


def _require(result: Tuple[bool, str]) -> str:
    ok, message = result
    if not ok:
        raise ValueError(message)
    return message


def _as_amount_source(name: str, value) -> AmountSource:
    if value is None:
        return COMPUTED
    if isinstance(value, (Computed, Override)):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Override(float(value))
    raise ValueError(f"{name} must be a number, None or an override (got {value!r})")


# --- positions -----------------------------------------------------------

def add_position(snapshot: Snapshot, ticker: str, shares: int, cost_basis: float,
                 date_acquired: Optional[str] = None) -> Snapshot:
    _require(CallValidator.validate_position(shares, cost_basis))
    record_id, snapshot = _mint_id(snapshot)
    position = Position(
        id=record_id,
        ticker=DataAccess.normalize_ticker(ticker),
        shares=int(shares),
        cost_basis=float(cost_basis),
        date_acquired=date_acquired
    )
    logger.info(f"Added position {record_id}: {position.ticker} x{shares} @ {cost_basis:.2f}")
    return replace(snapshot, positions=snapshot.positions + (position,))


def update_position(snapshot: Snapshot, position_id: int, shares: Optional[int] = None,
                    cost_basis: Optional[float] = None) -> Snapshot:
    """Edit share count and/or cost basis in place"""
    position = DataAccess.find_position(snapshot.positions, position_id)
    if position is None:
        raise ValueError(f"Position {position_id} not found")
    new_shares = position.shares if shares is None else int(shares)
    new_basis = position.cost_basis if cost_basis is None else float(cost_basis)
    _require(CallValidator.validate_position(new_shares, new_basis))

    updated = replace(position, shares=new_shares, cost_basis=new_basis)
    return replace(snapshot, positions=tuple(updated if p.id == position_id else p for p in snapshot.positions))


def remove_position(snapshot: Snapshot, position_id: int) -> Snapshot:
    if DataAccess.find_position(snapshot.positions, position_id) is None:
        raise ValueError(f"Position {position_id} not found")
    return replace(snapshot, positions=tuple(p for p in snapshot.positions if p.id != position_id))


# --- calls ---------------------------------------------------------------

def add_call(snapshot: Snapshot, ticker: str, strike: float, premium: float, contracts: int,
             date_opened: str, expiration: str, current_price: Optional[float] = None) -> Tuple[Snapshot, str]:
    """
    Write a new open call

    Returns:
        (new snapshot, validation message) - the message carries any coverage warning
    """
    message = _require(CallValidator.validate_new_call(ticker, contracts, strike, snapshot))
    if message != "OK":
        logger.warning(message)

    record_id, snapshot = _mint_id(snapshot)
    call = Call(
        id=record_id,
        ticker=DataAccess.normalize_ticker(ticker),
        strike=float(strike),
        premium=float(premium),
        contracts=int(contracts),
        date_opened=date_opened,
        expiration=expiration,
        status=CallStatus.OPEN,
        current_price=current_price
    )
    return replace(snapshot, calls=snapshot.calls + (call,)), message


def add_past_call(snapshot: Snapshot, ticker: str, strike: float, premium: float, contracts: int,
                  date_opened: str, expiration: str, status: CallStatus,
                  date_closed: Optional[str] = None, close_price: Optional[float] = None,
                  total_premium: AmountSource = COMPUTED,
                  total_close_cost: AmountSource = COMPUTED) -> Snapshot:
    """Log a historical call that is already in a terminal state"""
    status = CallStatus.parse(status)
    if status == CallStatus.OPEN:
        raise ValueError("Past calls must be expired, closed or assigned; use add_call for open calls")
    if contracts is None or contracts <= 0:
        raise ValueError(f"Contracts must be positive (got {contracts})")

    record_id, snapshot = _mint_id(snapshot)
    call = Call(
        id=record_id,
        ticker=DataAccess.normalize_ticker(ticker),
        strike=float(strike),
        premium=float(premium),
        contracts=int(contracts),
        date_opened=date_opened,
        expiration=expiration,
        status=status,
        date_closed=date_closed or expiration,
        close_price=close_price,
        total_premium=_as_amount_source('total_premium', total_premium),
        total_close_cost=_as_amount_source('total_close_cost', total_close_cost)
    )
    return replace(snapshot, calls=snapshot.calls + (call,))


def update_call(snapshot: Snapshot, call_id: int, **changes) -> Snapshot:
    """
    Edit fields of a call (e.g. overrides to reconcile with a broker statement)

    Status cannot be changed here; use close_call so transitions stay one-way.
    total_premium / total_close_cost accept a number (override), None
    (back to computed) or an AmountSource.
    """
    call = DataAccess.find_call(snapshot.calls, call_id)
    if call is None:
        raise ValueError(f"Call {call_id} not found")
    if 'status' in changes or 'id' in changes:
        raise ValueError("update_call cannot change a call's id or status")
    for key in ('total_premium', 'total_close_cost'):
        if key in changes:
            changes[key] = _as_amount_source(key, changes[key])
    updated = replace(call, **changes)
    return replace(snapshot, calls=tuple(updated if c.id == call_id else c for c in snapshot.calls))


def close_call(snapshot: Snapshot, call_id: int, action: CallStatus, today: date,
               close_price: float = 0.0) -> Snapshot:
    """Move an open call to expired, closed or assigned as of today"""
    action = CallStatus.parse(action)
    _require(CallValidator.validate_close(call_id, action, snapshot))

    call = DataAccess.find_call(snapshot.calls, call_id)
    updated = replace(call, status=action, date_closed=today.isoformat(), close_price=float(close_price or 0.0))
    logger.info(f"Call {call_id} ({call.ticker}) -> {action.value}")
    return replace(snapshot, calls=tuple(updated if c.id == call_id else c for c in snapshot.calls))


def roll_call(snapshot: Snapshot, call_id: int, today: date, close_price: float,
              new_strike: float, new_expiration: str, new_premium: float) -> Snapshot:
    """
    Buy the call back and write a later-dated one on the same shares

    Both halves land in the returned snapshot; nothing is persisted between them.
    """
    _require(CallValidator.validate_roll(call_id, new_expiration, snapshot))
    old = DataAccess.find_call(snapshot.calls, call_id)

    rolled = close_call(snapshot, call_id, CallStatus.CLOSED, today, close_price)
    rolled, _ = add_call(
        rolled,
        ticker=old.ticker,
        strike=new_strike,
        premium=new_premium,
        contracts=old.contracts,
        date_opened=today.isoformat(),
        expiration=new_expiration
    )
    logger.info(f"Rolled call {call_id} into {rolled.next_id - 1}")
    return rolled


def roll_net_credit(close_price: float, new_premium: float, contracts: int) -> float:
    """Credit (positive) or debit (negative) of a roll"""
    return (new_premium - close_price) * contracts * CONTRACT_MULTIPLIER


# --- watchlist & events --------------------------------------------------

def add_watchlist_item(snapshot: Snapshot, ticker: str, sector: str = "", iv_rank: Optional[float] = None,
                       current_iv: Optional[float] = None, notes: str = "") -> Snapshot:
    record_id, snapshot = _mint_id(snapshot)
    entry = WatchlistEntry(
        id=record_id,
        ticker=DataAccess.normalize_ticker(ticker),
        sector=sector,
        iv_rank=iv_rank,
        current_iv=current_iv,
        notes=notes
    )
    return replace(snapshot, watchlist=snapshot.watchlist + (entry,))


def remove_watchlist_item(snapshot: Snapshot, item_id: int) -> Snapshot:
    return replace(snapshot, watchlist=tuple(w for w in snapshot.watchlist if w.id != item_id))


def add_event(snapshot: Snapshot, ticker: str, event_type: str, event_date: str,
              description: str = "") -> Snapshot:
    record_id, snapshot = _mint_id(snapshot)
    event = CalendarEvent(
        id=record_id,
        ticker=DataAccess.normalize_ticker(ticker),
        event_type=(event_type or "other").strip().lower(),
        date=event_date,
        description=description
    )
    return replace(snapshot, events=snapshot.events + (event,))


def remove_event(snapshot: Snapshot, event_id: int) -> Snapshot:
    return replace(snapshot, events=tuple(e for e in snapshot.events if e.id != event_id))
