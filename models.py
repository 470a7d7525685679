"""
Data models and validation for covered call records
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from config import CONTRACT_MULTIPLIER
from data_access import DataAccess
from data_schema import get_field_name, known_keys


class CallStatus(str, Enum):
    """Lifecycle of a written call. Only OPEN has outgoing transitions."""
    OPEN = "open"
    EXPIRED = "expired"
    CLOSED = "closed"
    ASSIGNED = "assigned"

    @classmethod
    def parse(cls, value) -> "CallStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown call status: {value!r}") from None


ALLOWED_TRANSITIONS = {
    CallStatus.OPEN: frozenset({CallStatus.EXPIRED, CallStatus.CLOSED, CallStatus.ASSIGNED}),
    CallStatus.EXPIRED: frozenset(),
    CallStatus.CLOSED: frozenset(),
    CallStatus.ASSIGNED: frozenset(),
}


def can_transition(current: CallStatus, target: CallStatus) -> bool:
    """True if a call in `current` may move to `target`"""
    return target in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class Computed:
    """Amount derived from the per-share price x contracts x 100"""


@dataclass(frozen=True)
class Override:
    """Explicit broker-reconciled total that replaces the computed amount"""
    value: float


COMPUTED = Computed()
AmountSource = Union[Computed, Override]


def _to_float(value, default: Optional[float] = None) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value, default: int = 0) -> int:
    number = _to_float(value)
    if number is None:
        return default
    return int(number)


def _amount_source(raw: Dict[str, Any], key: str) -> AmountSource:
    # Key present with a usable number = override; absent, null or "" = computed
    if key not in raw:
        return COMPUTED
    value = _to_float(raw[key])
    if value is None:
        return COMPUTED
    return Override(value)


def _extra(raw: Dict[str, Any], category: str) -> Dict[str, Any]:
    owned = set(known_keys(category))
    return {k: v for k, v in raw.items() if k not in owned}


@dataclass(frozen=True)
class Position:
    """A lot of shares in one ticker"""
    id: int
    ticker: str
    shares: int
    cost_basis: float
    date_acquired: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def total_cost(self) -> float:
        """Capital deployed in this lot"""
        return self.cost_basis * self.shares

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Position":
        f = lambda name: get_field_name(name, 'position')
        return cls(
            id=_to_int(raw.get(f('id'))),
            ticker=DataAccess.normalize_ticker(raw.get(f('ticker'))),
            shares=_to_int(raw.get(f('shares'))),
            cost_basis=_to_float(raw.get(f('cost_basis')), 0.0),
            date_acquired=raw.get(f('date_acquired')) or None,
            extra=_extra(raw, 'position'),
        )

    def to_dict(self) -> Dict[str, Any]:
        f = lambda name: get_field_name(name, 'position')
        out = dict(self.extra)
        out[f('id')] = self.id
        out[f('ticker')] = self.ticker
        out[f('shares')] = self.shares
        out[f('cost_basis')] = self.cost_basis
        if self.date_acquired is not None:
            out[f('date_acquired')] = self.date_acquired
        return out


@dataclass(frozen=True)
class Call:
    """A single written (or historically logged) call option trade"""
    id: int
    ticker: str
    strike: float
    premium: float  # per share
    contracts: int
    date_opened: Optional[str]
    expiration: Optional[str]
    status: CallStatus = CallStatus.OPEN
    date_closed: Optional[str] = None
    close_price: Optional[float] = None
    total_premium: AmountSource = COMPUTED
    total_close_cost: AmountSource = COMPUTED
    current_price: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_open(self) -> bool:
        """Check if the call is still open"""
        return self.status == CallStatus.OPEN

    @property
    def shares_covered(self) -> int:
        """Shares obligated by this call"""
        return self.contracts * CONTRACT_MULTIPLIER

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Call":
        f = lambda name: get_field_name(name, 'call')
        return cls(
            id=_to_int(raw.get(f('id'))),
            ticker=DataAccess.normalize_ticker(raw.get(f('ticker'))),
            strike=_to_float(raw.get(f('strike')), 0.0),
            premium=_to_float(raw.get(f('premium_per_share')), 0.0),
            contracts=_to_int(raw.get(f('contracts'))),
            date_opened=raw.get(f('date_opened')) or None,
            expiration=raw.get(f('expiration')) or None,
            status=CallStatus.parse(raw.get(f('status'), CallStatus.OPEN.value)),
            date_closed=raw.get(f('date_closed')) or None,
            close_price=_to_float(raw.get(f('close_price'))),
            total_premium=_amount_source(raw, f('total_premium')),
            total_close_cost=_amount_source(raw, f('total_close_cost')),
            current_price=_to_float(raw.get(f('current_price'))),
            extra=_extra(raw, 'call'),
        )

    def to_dict(self) -> Dict[str, Any]:
        f = lambda name: get_field_name(name, 'call')
        out = dict(self.extra)
        out[f('id')] = self.id
        out[f('ticker')] = self.ticker
        out[f('strike')] = self.strike
        out[f('premium_per_share')] = self.premium
        out[f('contracts')] = self.contracts
        out[f('date_opened')] = self.date_opened
        out[f('expiration')] = self.expiration
        out[f('status')] = self.status.value
        if self.date_closed is not None:
            out[f('date_closed')] = self.date_closed
        if self.close_price is not None:
            out[f('close_price')] = self.close_price
        # Unset overrides stay absent so they never read back as an explicit 0
        if isinstance(self.total_premium, Override):
            out[f('total_premium')] = self.total_premium.value
        if isinstance(self.total_close_cost, Override):
            out[f('total_close_cost')] = self.total_close_cost.value
        if self.current_price is not None:
            out[f('current_price')] = self.current_price
        return out


@dataclass(frozen=True)
class WatchlistEntry:
    """A tracked ticker with volatility/sector metadata"""
    id: int
    ticker: str
    sector: str = ""
    iv_rank: Optional[float] = None
    current_iv: Optional[float] = None
    notes: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "WatchlistEntry":
        f = lambda name: get_field_name(name, 'watchlist')
        return cls(
            id=_to_int(raw.get(f('id'))),
            ticker=DataAccess.normalize_ticker(raw.get(f('ticker'))),
            sector=raw.get(f('sector')) or "",
            iv_rank=_to_float(raw.get(f('iv_rank'))),
            current_iv=_to_float(raw.get(f('current_iv'))),
            notes=raw.get(f('notes')) or "",
            extra=_extra(raw, 'watchlist'),
        )

    def to_dict(self) -> Dict[str, Any]:
        f = lambda name: get_field_name(name, 'watchlist')
        out = dict(self.extra)
        out[f('id')] = self.id
        out[f('ticker')] = self.ticker
        out[f('sector')] = self.sector
        if self.iv_rank is not None:
            out[f('iv_rank')] = self.iv_rank
        if self.current_iv is not None:
            out[f('current_iv')] = self.current_iv
        if self.notes:
            out[f('notes')] = self.notes
        return out


@dataclass(frozen=True)
class CalendarEvent:
    """A ticker-scoped dated event (earnings, ex-div, fed, other)"""
    id: int
    ticker: str
    event_type: str
    date: Optional[str]
    description: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "CalendarEvent":
        f = lambda name: get_field_name(name, 'event')
        return cls(
            id=_to_int(raw.get(f('id'))),
            ticker=DataAccess.normalize_ticker(raw.get(f('ticker'))),
            event_type=str(raw.get(f('event_type')) or "other").strip().lower(),
            date=raw.get(f('date')) or None,
            description=raw.get(f('description')) or "",
            extra=_extra(raw, 'event'),
        )

    def to_dict(self) -> Dict[str, Any]:
        f = lambda name: get_field_name(name, 'event')
        out = dict(self.extra)
        out[f('id')] = self.id
        out[f('ticker')] = self.ticker
        out[f('event_type')] = self.event_type
        out[f('date')] = self.date
        out[f('description')] = self.description
        return out


@dataclass(frozen=True)
class Snapshot:
    """Everything stored for one household code"""
    positions: Tuple[Position, ...] = ()
    calls: Tuple[Call, ...] = ()
    watchlist: Tuple[WatchlistEntry, ...] = ()
    events: Tuple[CalendarEvent, ...] = ()
    next_id: int = 1

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "Snapshot":
        if not raw:
            return cls.empty()
        f = lambda name: get_field_name(name, 'snapshot')
        positions = tuple(Position.from_dict(p) for p in raw.get(f('positions')) or [])
        calls = tuple(Call.from_dict(c) for c in raw.get(f('calls')) or [])
        watchlist = tuple(WatchlistEntry.from_dict(w) for w in raw.get(f('watchlist')) or [])
        events = tuple(CalendarEvent.from_dict(e) for e in raw.get(f('events')) or [])

        # Never hand out an id that is already taken
        used = [r.id for r in (*positions, *calls, *watchlist, *events)]
        next_id = max(_to_int(raw.get(f('next_id')), 1), max(used, default=0) + 1)
        return cls(positions=positions, calls=calls, watchlist=watchlist, events=events, next_id=next_id)

    def to_dict(self) -> Dict[str, Any]:
        f = lambda name: get_field_name(name, 'snapshot')
        return {
            f('positions'): [p.to_dict() for p in self.positions],
            f('calls'): [c.to_dict() for c in self.calls],
            f('watchlist'): [w.to_dict() for w in self.watchlist],
            f('events'): [e.to_dict() for e in self.events],
            f('next_id'): self.next_id,
        }


class CallValidator:
    """Validates ledger operations before they produce a new snapshot"""

    @staticmethod
    def validate_position(shares: int, cost_basis: float) -> Tuple[bool, str]:
        """Validate a new or edited position"""
        if shares is None or shares <= 0:
            return False, f"Shares must be positive (got {shares})"
        if cost_basis is None or cost_basis < 0:
            return False, f"Cost basis cannot be negative (got {cost_basis})"
        return True, "OK"

    @staticmethod
    def validate_new_call(ticker: str, contracts: int, strike: float,
                          snapshot: Snapshot) -> Tuple[bool, str]:
        """Validate writing a call - coverage shortfall is a warning only"""
        if contracts is None or contracts <= 0:
            return False, f"Contracts must be positive (got {contracts})"
        if strike is None or strike <= 0:
            return False, f"Strike must be positive (got {strike})"

        held = sum(p.shares for p in DataAccess.positions_for_ticker(snapshot.positions, ticker))
        existing = sum(
            c.contracts for c in DataAccess.calls_for_ticker(snapshot.calls, ticker) if c.is_open
        )
        required = (existing + contracts) * CONTRACT_MULTIPLIER

        if held < required:
            if held > 0:
                coverage_pct = required / held * 100
                return True, (f"WARNING: Coverage will exceed 100% ({coverage_pct:.1f}%). Have {held:,} shares, "
                              f"need {required:,} (existing: {existing} contracts + new: {contracts} contracts).")
            return True, (f"WARNING: No {DataAccess.normalize_ticker(ticker)} shares held. Need {required:,} shares "
                          f"(existing: {existing} contracts + new: {contracts} contracts).")

        return True, "OK"

    @staticmethod
    def validate_close(call_id: int, action: CallStatus, snapshot: Snapshot) -> Tuple[bool, str]:
        """Validate closing an open call as expired, closed or assigned"""
        call = DataAccess.find_call(snapshot.calls, call_id)
        if call is None:
            return False, f"Call {call_id} not found"
        if not can_transition(call.status, action):
            return False, f"Call {call_id} cannot move from {call.status.value} to {action.value}"
        return True, "OK"

    @staticmethod
    def validate_roll(call_id: int, new_expiration, snapshot: Snapshot) -> Tuple[bool, str]:
        """Validate rolling an open call to a later expiration"""
        ok, message = CallValidator.validate_close(call_id, CallStatus.CLOSED, snapshot)
        if not ok:
            return ok, message

        call = DataAccess.find_call(snapshot.calls, call_id)
        new_expiry = DataAccess.parse_date(new_expiration)
        if new_expiry is None:
            return False, f"New expiration {new_expiration!r} is not a valid date"

        old_expiry = DataAccess.parse_date(call.expiration)
        if old_expiry is not None and new_expiry <= old_expiry:
            return False, f"New expiration {new_expiry} must be after old expiration {old_expiry}"

        return True, "OK"
