"""Unit tests for record models, JSON mapping and the call status lifecycle."""

import pytest

from data_schema import get_field_name, get_logical_name, validate_snapshot
from models import (
    COMPUTED,
    Call,
    CallStatus,
    Override,
    Snapshot,
    can_transition,
)


RAW_CALL = {
    "id": 7,
    "ticker": "xyz",
    "strike": 55,
    "premium": 2,
    "contracts": 1,
    "dateOpened": "2024-01-05",
    "expiration": "2024-02-02",
    "status": "expired",
}


class TestCallStatus:
    def test_parse_is_case_insensitive(self):
        assert CallStatus.parse(" Expired ") == CallStatus.EXPIRED

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            CallStatus.parse("exercised")

    def test_only_open_moves(self):
        for target in (CallStatus.EXPIRED, CallStatus.CLOSED, CallStatus.ASSIGNED):
            assert can_transition(CallStatus.OPEN, target)
        for current in (CallStatus.EXPIRED, CallStatus.CLOSED, CallStatus.ASSIGNED):
            for target in CallStatus:
                assert not can_transition(current, target)


class TestCallMapping:
    def test_from_dict(self):
        call = Call.from_dict(RAW_CALL)
        assert call.ticker == "XYZ"
        assert call.premium == 2.0
        assert call.status == CallStatus.EXPIRED
        assert call.total_premium == COMPUTED
        assert call.total_close_cost == COMPUTED

    def test_absent_override_stays_absent(self):
        out = Call.from_dict(RAW_CALL).to_dict()
        assert "totalPremium" not in out
        assert "totalCloseCost" not in out

    def test_explicit_zero_override_survives(self):
        raw = dict(RAW_CALL, totalPremium=0, totalCloseCost=0)
        call = Call.from_dict(raw)
        assert call.total_premium == Override(0.0)
        assert call.to_dict()["totalPremium"] == 0.0

    def test_null_override_is_computed(self):
        call = Call.from_dict(dict(RAW_CALL, totalPremium=None, totalCloseCost=""))
        assert call.total_premium == COMPUTED
        assert call.total_close_cost == COMPUTED

    def test_unknown_keys_preserved(self):
        raw = dict(RAW_CALL, brokerRef="A-123")
        assert Call.from_dict(raw).to_dict()["brokerRef"] == "A-123"

    def test_missing_status_defaults_open(self):
        raw = {k: v for k, v in RAW_CALL.items() if k != "status"}
        assert Call.from_dict(raw).is_open


class TestSnapshot:
    def test_round_trip(self):
        raw = {
            "positions": [{"id": 1, "ticker": "XYZ", "shares": 100, "costBasis": 50.0, "dateAcquired": "2024-01-01"}],
            "calls": [RAW_CALL],
            "watchlist": [{"id": 3, "ticker": "NVDA", "sector": "Tech", "currentIV": 62.5}],
            "events": [{"id": 4, "ticker": "XYZ", "type": "earnings", "date": "2024-07-25", "description": ""}],
            "nextId": 8,
        }
        snapshot = Snapshot.from_dict(raw)
        assert Snapshot.from_dict(snapshot.to_dict()) == snapshot
        assert snapshot.to_dict()["positions"][0]["costBasis"] == 50.0

    def test_next_id_repaired(self):
        snapshot = Snapshot.from_dict({"calls": [RAW_CALL], "nextId": 2})
        assert snapshot.next_id == 8

    def test_empty(self):
        assert Snapshot.from_dict(None) == Snapshot.empty()
        assert Snapshot.from_dict({}).next_id == 1


class TestSchema:
    def test_field_names(self):
        assert get_field_name("cost_basis", "position") == "costBasis"
        assert get_field_name("event_type", "event") == "type"
        assert get_logical_name("totalCloseCost", "call") == "total_close_cost"
        assert get_logical_name("nope") is None

    def test_validate_snapshot(self):
        assert validate_snapshot({"calls": [RAW_CALL], "nextId": 8})['valid'] is True

        result = validate_snapshot({"calls": [{"id": 1}], "positions": "bad", "nextId": 0})
        assert result['valid'] is False
        assert "'positions' must be a list" in result['errors']
        assert "calls[0] missing 'ticker'" in result['errors']
        assert "'nextId' must be a positive integer" in result['errors']

    def test_non_numeric_amounts_reported(self):
        """A non-numeric override would load as computed, so validation names it."""
        raw = dict(RAW_CALL, totalPremium="about 190", closePrice=None, totalCloseCost="")
        result = validate_snapshot({"calls": [raw], "nextId": 8})
        assert result['valid'] is False
        assert result['errors'] == [
            "calls[0] 'totalPremium' must be a number "
            "(Optional broker-reconciled total premium received), got 'about 190'"
        ]

    def test_validate_non_object(self):
        assert validate_snapshot([])['valid'] is False
