import pytest

from vestledger.access import AccessController, ZERO_IDENTITY
from vestledger.asset import Custody, InsufficientAllowance, InsufficientBalance, PaperAsset
from vestledger.clock import SimulatedClock
from vestledger.events.schema import AllocationRegistered
from vestledger.ledger import (
    AllocationExists,
    AllocationLedger,
    ConfigurationError,
    InvalidAllocation,
    InvalidAmount,
    InvalidDuration,
    InvalidRecipient,
    InvalidStartTime,
    UnauthorizedCaller,
)


ISSUER = "issuer"
CUSTODY = "vesting-ledger"
START = 1_700_000_000
DAY = 86_400


def _make_ledger(supply: int = 10_000, approve: bool = True):
    asset = PaperAsset("VEST")
    asset.mint(ISSUER, supply)
    if approve:
        asset.approve(ISSUER, CUSTODY, supply)
    published = []
    access = AccessController(ISSUER, publish=published.append)
    ledger = AllocationLedger(Custody(asset, CUSTODY), access, clock=SimulatedClock(START), publish=published.append)
    return ledger, asset, published


def test_register_pulls_funds_and_creates_record():
    ledger, asset, published = _make_ledger()
    rec = ledger.register("alice", 1000, START, 30 * DAY, caller=ISSUER)
    assert rec.released_amount == 0
    assert ledger.get_allocation("alice") == rec
    assert ledger.held_balance() == 1000
    assert asset.balance_of(ISSUER) == 9_000
    assert asset.allowance(ISSUER, CUSTODY) == 9_000

    assert len(published) == 1
    evt = published[0].event
    assert isinstance(evt, AllocationRegistered)
    assert (evt.recipient, evt.total_amount, evt.start_time, evt.duration) == ("alice", 1000, START, 30 * DAY)
    assert evt.asset_id == "VEST"
    assert published[0].sequence == 1


def test_register_uses_context_caller():
    ledger, _asset, _ = _make_ledger()
    with ledger._access.acting_as(ISSUER):
        ledger.register("alice", 10, START, DAY)
    assert ledger.get_allocation("alice").total_amount == 10
    with pytest.raises(UnauthorizedCaller):
        ledger.register("bob", 10, START, DAY)


def test_unauthorized_caller_changes_nothing():
    ledger, asset, published = _make_ledger()
    asset.mint("mallory", 1000)
    asset.approve("mallory", CUSTODY, 1000)
    with pytest.raises(UnauthorizedCaller):
        ledger.register("alice", 1000, START, DAY, caller="mallory")
    assert ledger.get_allocation("alice") is None
    assert ledger.held_balance() == 0
    assert asset.balance_of("mallory") == 1000
    assert published == []


def test_second_registration_conflicts_and_keeps_original():
    ledger, asset, _ = _make_ledger()
    ledger.register("alice", 1000, START, 30 * DAY, caller=ISSUER)
    with pytest.raises(AllocationExists):
        ledger.register("alice", 1000, START, 30 * DAY, caller=ISSUER)
    with pytest.raises(AllocationExists):
        ledger.register("alice", 5, START + 1, DAY, caller=ISSUER)
    rec = ledger.get_allocation("alice")
    assert (rec.total_amount, rec.start_time, rec.duration, rec.released_amount) == (1000, START, 30 * DAY, 0)
    assert ledger.held_balance() == 1000


@pytest.mark.parametrize(
    "recipient,amount,duration,start,err",
    [
        ("alice", 0, DAY, START, InvalidAmount),
        ("alice", 1000, 0, START, InvalidDuration),
        (None, 1000, DAY, START, InvalidRecipient),
        ("", 1000, DAY, START, InvalidRecipient),
        (ZERO_IDENTITY, 1000, DAY, START, InvalidRecipient),
        ("alice", -5, DAY, START, InvalidAmount),
        ("alice", 1000, DAY, -1, InvalidStartTime),
    ],
)
def test_validation_errors_leave_no_record(recipient, amount, duration, start, err):
    ledger, asset, published = _make_ledger()
    with pytest.raises(err) as info:
        ledger.register(recipient, amount, start, duration, caller=ISSUER)
    assert isinstance(info.value, InvalidAllocation)
    assert ledger.records() == {}
    assert ledger.held_balance() == 0
    assert asset.balance_of(ISSUER) == 10_000
    assert published == []


def test_error_reasons_are_distinct():
    reasons = {
        UnauthorizedCaller.reason,
        InvalidRecipient.reason,
        InvalidAmount.reason,
        InvalidDuration.reason,
        AllocationExists.reason,
    }
    assert len(reasons) == 5


def test_non_integer_amount_is_a_type_error():
    ledger, _asset, _ = _make_ledger()
    with pytest.raises(TypeError):
        ledger.register("alice", 10.5, START, DAY, caller=ISSUER)
    with pytest.raises(TypeError):
        ledger.register("alice", True, START, DAY, caller=ISSUER)


def test_transfer_failure_propagates_and_leaves_no_state():
    ledger, asset, published = _make_ledger(approve=False)
    with pytest.raises(InsufficientAllowance):
        ledger.register("alice", 1000, START, DAY, caller=ISSUER)
    assert ledger.get_allocation("alice") is None

    asset.approve(ISSUER, CUSTODY, 50_000)
    with pytest.raises(InsufficientBalance):
        ledger.register("alice", 20_000, START, DAY, caller=ISSUER)
    assert ledger.get_allocation("alice") is None
    assert ledger.held_balance() == 0
    assert published == []

    # the failed attempts did not consume the recipient slot
    ledger.register("alice", 1000, START, DAY, caller=ISSUER)
    assert ledger.get_allocation("alice").total_amount == 1000


def test_start_time_in_past_or_far_future_is_accepted():
    ledger, _asset, _ = _make_ledger()
    ledger.register("past", 100, 0, DAY, caller=ISSUER)
    ledger.register("future", 100, START + 100 * 365 * DAY, DAY, caller=ISSUER)
    assert ledger.vested_amount("past") == 100
    assert ledger.vested_amount("future") == 0


def test_null_asset_identity_rejected():
    asset = PaperAsset("")
    access = AccessController(ISSUER, publish=lambda env: None)
    with pytest.raises(ConfigurationError):
        AllocationLedger(Custody(asset, CUSTODY), access, publish=lambda env: None)
    with pytest.raises(ConfigurationError):
        AllocationLedger(Custody(PaperAsset(ZERO_IDENTITY), CUSTODY), access, publish=lambda env: None)


def test_identity_queries():
    ledger, _asset, _ = _make_ledger()
    assert ledger.asset_id == "VEST"
    assert ledger.privileged_identity == ISSUER
    ledger._access.transfer_privilege("issuer-2", caller=ISSUER)
    assert ledger.privileged_identity == "issuer-2"
    with pytest.raises(UnauthorizedCaller):
        ledger.register("alice", 10, START, DAY, caller=ISSUER)
