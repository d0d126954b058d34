"""Tests for donation aggregation and the reconciliation invariant."""

import asyncio
from decimal import Decimal

import pytest

from aid_ledger.adapters.base import PaymentProcessor
from aid_ledger.adapters.payment import MockPaymentProcessor
from aid_ledger.config import Settings
from aid_ledger.core.errors import Conflict, InvalidArgument, NotFound
from aid_ledger.core.models import Decision, PaymentMode, RequestStatus, User
from aid_ledger.donations import settle_and_record, unreconciled
from aid_ledger.workflow import Workflow


@pytest.fixture
def approved(workflow, student, admin):
    req = workflow.create_request(student, "Semester fees", "", 1000)
    return workflow.decide_request(req.request_id, Decision.APPROVED, admin)


def _raised(store, request_id):
    return store.find_request(request_id).amount_raised


def test_end_to_end_over_funding(workflow, store, student, admin) -> None:
    assert student.role == "STUDENT"
    r1 = workflow.create_request(student, "Semester fees", "", 1000)

    approved = workflow.decide_request(r1.request_id, Decision.APPROVED, admin)
    assert approved.status == RequestStatus.APPROVED
    assert approved.approved_at is not None
    assert len(store.get_snapshot().admin_logs) == 1

    workflow.record_donation(r1.request_id, admin, 400)
    workflow.record_donation(r1.request_id, student, 700)

    snap = store.get_snapshot()
    assert snap.request(r1.request_id).amount_raised == 1100
    given = snap.donations_for(r1.request_id)
    assert len(given) == 2
    assert sum(d.amount for d in given) == 1100
    assert unreconciled(snap) == {}


def test_donation_record_fields(workflow, store, approved, admin, clock) -> None:
    donation = workflow.record_donation(approved.request_id, admin, 250, payment_mode="test")
    assert donation.donor_id == admin.user_id
    assert donation.donor_name == admin.full_name
    assert donation.payment_mode == PaymentMode.TEST
    assert donation.timestamp == clock.now
    assert store.get_snapshot().donations == (donation,)


def test_donation_and_total_commit_together(workflow, store, approved, admin) -> None:
    seen = []
    store.subscribe(seen.append)
    workflow.record_donation(approved.request_id, admin, 100)

    assert len(seen) == 2
    for snap in seen:
        assert unreconciled(snap) == {}


@pytest.mark.parametrize("amount", [0, -5, -0.01, float("nan"), float("inf"), True, "100"])
def test_invalid_amounts_rejected(workflow, store, approved, admin, amount) -> None:
    before = store.get_snapshot()
    with pytest.raises(InvalidArgument):
        workflow.record_donation(approved.request_id, admin, amount)
    after = store.get_snapshot()
    assert after.donations == ()
    assert after.request(approved.request_id).amount_raised == 0
    assert after.version == before.version


def test_unknown_request(workflow, admin) -> None:
    with pytest.raises(NotFound):
        workflow.record_donation("ghost", admin, 10)


def test_only_approved_requests_accept_donations(workflow, store, student, admin) -> None:
    pending = workflow.create_request(student, "Rent", "", 500)
    with pytest.raises(Conflict):
        workflow.record_donation(pending.request_id, admin, 10)

    workflow.decide_request(pending.request_id, Decision.REJECTED, admin)
    with pytest.raises(Conflict):
        workflow.record_donation(pending.request_id, admin, 10)
    assert store.get_snapshot().donations == ()


def test_verified_donor_gate(store, approved, student, admin) -> None:
    strict = Workflow(store, Settings(require_verified_donors=True))
    with pytest.raises(Conflict):
        strict.record_donation(approved.request_id, student, 50)

    strict.decide_verification(student.user_id, Decision.APPROVED, admin)
    verified = store.find_user(student.user_id)
    strict.record_donation(approved.request_id, verified, 50)
    assert _raised(store, approved.request_id) == 50


def test_reconciliation_across_many_donations(workflow, store, student, admin) -> None:
    ids = []
    for title in ("Fees", "Rent", "Medicine"):
        req = workflow.create_request(student, title, "", 300)
        workflow.decide_request(req.request_id, Decision.APPROVED, admin)
        ids.append(req.request_id)

    for i, amount in enumerate([10, 25.5, 99, 0.25, 300, 7]):
        workflow.record_donation(ids[i % 3], admin, amount)
        assert unreconciled(store.get_snapshot()) == {}

    assert _raised(store, ids[1]) == 325.5


def test_unreconciled_reports_mismatch(store, approved) -> None:
    tampered = approved.model_copy(update={"amount_raised": 42.0})
    store.mutate(tampered)
    assert unreconciled(store.get_snapshot()) == {approved.request_id: (42.0, 0.0)}


def test_settle_and_record(store, approved, admin) -> None:
    processor = MockPaymentProcessor(delay=0, mode=PaymentMode.TEST)
    donation = asyncio.run(settle_and_record(store, processor, approved.request_id, admin, 75))
    assert donation.payment_mode == PaymentMode.TEST
    assert _raised(store, approved.request_id) == 75


class RecordingProcessor(PaymentProcessor):
    def __init__(self, fail: bool = False) -> None:
        self.calls = []
        self.fail = fail

    async def settle(self, request_id: str, donor_id: str, amount: float) -> str:
        self.calls.append((request_id, donor_id, amount))
        if self.fail:
            raise RuntimeError("card declined")
        return "pay_1"


def test_failed_settlement_records_nothing(store, approved, admin) -> None:
    processor = RecordingProcessor(fail=True)
    with pytest.raises(RuntimeError):
        asyncio.run(settle_and_record(store, processor, approved.request_id, admin, 75))
    assert processor.calls == [(approved.request_id, admin.user_id, 75.0)]
    assert store.get_snapshot().donations == ()


def test_ineligible_donation_is_not_settled(workflow, store, student, admin) -> None:
    pending = workflow.create_request(student, "Rent", "", 500)
    processor = RecordingProcessor()
    with pytest.raises(Conflict):
        asyncio.run(settle_and_record(store, processor, pending.request_id, admin, 10))
    with pytest.raises(NotFound):
        asyncio.run(settle_and_record(store, processor, "ghost", admin, 10))
    with pytest.raises(InvalidArgument):
        asyncio.run(settle_and_record(store, processor, pending.request_id, admin, 0))
    assert processor.calls == []


def test_donor_verification_uses_ledger_state(store, approved, student, admin) -> None:
    """The verified-donor gate ignores whatever flags the caller's copy carries."""
    strict = Workflow(store, Settings(require_verified_donors=True))

    approved_copy = strict.decide_verification(student.user_id, Decision.APPROVED, admin)
    strict.decide_verification(student.user_id, Decision.REJECTED, admin)
    with pytest.raises(Conflict):
        strict.record_donation(approved.request_id, approved_copy, 50)
    processor = RecordingProcessor()
    with pytest.raises(Conflict):
        asyncio.run(
            settle_and_record(
                store, processor, approved.request_id, approved_copy, 50, require_verified=True
            )
        )
    assert processor.calls == []

    # The registration-time copy still says pending; the ledger says approved.
    strict.decide_verification(student.user_id, Decision.APPROVED, admin)
    donation = strict.record_donation(approved.request_id, student, 50)
    assert donation.donor_id == student.user_id
    assert _raised(store, approved.request_id) == 50


def test_donor_name_comes_from_ledger(workflow, store, approved, admin) -> None:
    renamed = admin.model_copy(update={"full_name": "Someone Else"})
    donation = workflow.record_donation(approved.request_id, renamed, 10)
    assert donation.donor_name == admin.full_name


def test_unknown_donor(workflow, store, approved) -> None:
    stranger = User(full_name="Stranger", email="stranger@example.org")
    with pytest.raises(NotFound):
        workflow.record_donation(approved.request_id, stranger, 10)
    processor = RecordingProcessor()
    with pytest.raises(NotFound):
        asyncio.run(settle_and_record(store, processor, approved.request_id, stranger, 10))
    assert processor.calls == []
    assert store.get_snapshot().donations == ()


def test_decimal_amounts_accepted(workflow, store, approved, admin) -> None:
    donation = workflow.record_donation(approved.request_id, admin, Decimal("12.5"))
    assert donation.amount == 12.5
    assert _raised(store, approved.request_id) == 12.5
