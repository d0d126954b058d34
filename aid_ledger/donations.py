"""Donation aggregation.

A donation and the matching increase of the request's ``amount_raised``
are staged in one transaction, so a snapshot either shows both or
neither. The ledger does not cap totals at the requested amount.
"""

from __future__ import annotations

import decimal
import logging
import math
import numbers
from typing import TYPE_CHECKING

from .core.errors import Conflict, InvalidArgument, NotFound
from .core.models import (
    Donation,
    FinancialRequest,
    LedgerSnapshot,
    PaymentMode,
    RequestStatus,
    User,
)

if TYPE_CHECKING:
    from .adapters.base import PaymentProcessor
    from .core.storage import LedgerStore

log = logging.getLogger(__name__)


def check_amount(amount: object, label: str = "Donation amount") -> float:
    """Return ``amount`` as a float, or raise if it is not a finite positive number."""
    if isinstance(amount, bool) or not isinstance(amount, (numbers.Real, decimal.Decimal)):
        raise InvalidArgument(f"{label} must be a number, got {amount!r}.")
    value = float(amount)
    if not math.isfinite(value) or value <= 0:
        raise InvalidArgument(f"{label} must be a finite positive number.")
    return value


def _check_open(request: FinancialRequest) -> None:
    if request.status != RequestStatus.APPROVED:
        raise Conflict(
            f"Request {request.request_id} is {request.status.value} and cannot receive donations."
        )


def _check_donor(account: User, require_verified: bool) -> None:
    # Verification is read from the ledger, not from the caller's copy.
    if require_verified and not account.is_verified:
        raise Conflict(f"{account.full_name} must be verified before donating.")


def record_donation(
    store: LedgerStore,
    request_id: str,
    donor: User,
    amount: float,
    payment_mode: PaymentMode | str = PaymentMode.MOCK,
    require_verified: bool = False,
) -> Donation:
    """Append a donation and add ``amount`` to the request's running total."""
    amount = check_amount(amount)
    try:
        mode = PaymentMode(payment_mode)
    except ValueError as exc:
        raise InvalidArgument(f"Unknown payment mode {payment_mode!r}.") from exc

    with store.transaction() as txn:
        account = txn.user(donor.user_id)
        _check_donor(account, require_verified)
        request = txn.request(request_id)
        _check_open(request)
        donation = Donation(
            request_id=request_id,
            donor_id=account.user_id,
            donor_name=account.full_name,
            amount=amount,
            payment_mode=mode,
            timestamp=store.clock(),
        )
        txn.append(donation)
        txn.replace(
            request.model_copy(update={"amount_raised": request.amount_raised + amount})
        )
    log.info("Donation %s of %.2f to %s by %s", donation.donation_id, amount, request_id, donor.user_id)
    return donation


async def settle_and_record(
    store: LedgerStore,
    processor: PaymentProcessor,
    request_id: str,
    donor: User,
    amount: float,
    require_verified: bool = False,
) -> Donation:
    """Settle with the payment collaborator, then record the donation.

    Arguments are checked up front so a doomed donation is never sent
    for settlement.
    """
    amount = check_amount(amount)
    request = store.find_request(request_id)
    if request is None:
        raise NotFound(f"Request {request_id} not found.")
    _check_open(request)
    account = store.find_user(donor.user_id)
    if account is None:
        raise NotFound(f"User {donor.user_id} not found.")
    _check_donor(account, require_verified)
    await processor.settle(request_id, donor.user_id, amount)
    return record_donation(
        store,
        request_id,
        donor,
        amount,
        payment_mode=processor.mode,
        require_verified=require_verified,
    )


def unreconciled(snapshot: LedgerSnapshot) -> dict[str, tuple[float, float]]:
    """Return ``{request_id: (amount_raised, donated)}`` where the two disagree."""
    totals: dict[str, float] = {}
    for d in snapshot.donations:
        totals[d.request_id] = totals.get(d.request_id, 0.0) + d.amount
    mismatched: dict[str, tuple[float, float]] = {}
    for r in snapshot.requests:
        donated = totals.get(r.request_id, 0.0)
        if not math.isclose(r.amount_raised, donated, abs_tol=1e-9):
            mismatched[r.request_id] = (r.amount_raised, donated)
    return mismatched
