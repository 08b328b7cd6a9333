"""
Tests for the ledger exception hierarchy and event serialization.
"""

import pytest

from vesting_ledger.blockchain.ledger_events import Claimed, ScheduleCreated
from vesting_ledger.core.ledger_exceptions import (
    AuthenticationError,
    ConfigurationError,
    DuplicateCommitmentError,
    InsufficientAllowanceError,
    InvalidFractionError,
    InvalidProofError,
    LedgerError,
    MalformedBatchError,
    NothingToClaimError,
    StateError,
    TokenError,
    TransferFailedError,
    ValidationError,
    is_recoverable_error,
)


@pytest.mark.parametrize(
    "exc_class, parent",
    [
        (InvalidFractionError, ValidationError),
        (MalformedBatchError, ValidationError),
        (InvalidProofError, AuthenticationError),
        (DuplicateCommitmentError, StateError),
        (NothingToClaimError, StateError),
        (InsufficientAllowanceError, TokenError),
        (TransferFailedError, TokenError),
        (ConfigurationError, LedgerError),
    ],
)
def test_hierarchy(exc_class, parent):
    assert issubclass(exc_class, parent)
    assert issubclass(exc_class, LedgerError)


def test_message_and_details():
    exc = InvalidFractionError("bad bps", details={"start_bps": 10_001})
    assert str(exc) == "bad bps"
    assert exc.details == {"start_bps": 10_001}
    assert exc.code == "InvalidFraction"
    assert exc.to_dict() == {
        "code": "InvalidFraction",
        "message": "bad bps",
        "details": {"start_bps": 10_001},
    }


def test_to_dict_omits_empty_details():
    assert InvalidProofError("nope").to_dict() == {"code": "InvalidProof", "message": "nope"}


def test_recoverability():
    assert is_recoverable_error(NothingToClaimError("later"))
    assert not is_recoverable_error(NothingToClaimError("never", recoverable=False))
    assert not is_recoverable_error(InvalidProofError("forged"))
    assert not is_recoverable_error(ValueError("plain"))


def test_event_serialization():
    event = ScheduleCreated(1, 10, 20, 12, 1500, b"\xab" * 32, 99)
    data = event.to_dict()
    assert data["event"] == "ScheduleCreated"
    assert data["merkle_root"] == "0x" + "ab" * 32
    assert "timestamp" not in data
    assert Claimed(1, "0xabc", 5).to_dict() == {
        "event": "Claimed",
        "schedule_id": 1,
        "account": "0xabc",
        "amount": 5,
    }
