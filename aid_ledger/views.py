"""Read-only views over a ledger snapshot.

These are what the pages render: the public feed, the admin queues and a
member's dashboard. They never touch the store, only a snapshot handed to
them, so they can run inside a subscriber callback.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from .core.errors import InvalidArgument
from .core.models import (
    AdminLog,
    Donation,
    FinancialRequest,
    LedgerSnapshot,
    RequestStatus,
    Role,
    User,
    VerificationStatus,
)

ANONYMOUS_NAME = "Anonymous Peer"
FEED_ORDERS = ("critical", "newest")


def display_name(request: FinancialRequest) -> str:
    return ANONYMOUS_NAME if request.hide_identity else request.student_name


def funding_progress(request: FinancialRequest) -> float:
    """Percentage of the requested amount raised so far (may exceed 100)."""
    return request.amount_raised / request.requested_amount * 100


def accepts_donations(request: FinancialRequest) -> bool:
    # Fully funded requests stay donatable in the ledger; the pages stop
    # offering the button.
    return request.status == RequestStatus.APPROVED and funding_progress(request) < 100


def criticality(request: FinancialRequest) -> float:
    return request.urgency_score + request.funding_gap / 1000


def public_feed(snapshot: LedgerSnapshot, order: str = "critical") -> list[FinancialRequest]:
    """Approved requests, most critical (or newest) first."""
    approved = [r for r in snapshot.requests if r.status == RequestStatus.APPROVED]
    if order == "critical":
        return sorted(approved, key=criticality, reverse=True)
    if order == "newest":
        return sorted(approved, key=lambda r: r.created_at, reverse=True)
    raise InvalidArgument(f"Unknown feed order {order!r}; expected one of {FEED_ORDERS}.")


def pending_queue(snapshot: LedgerSnapshot) -> list[FinancialRequest]:
    """Requests awaiting an admin decision, oldest first."""
    return sorted(
        (r for r in snapshot.requests if r.status == RequestStatus.PENDING),
        key=lambda r: r.created_at,
    )


def pending_verifications(snapshot: LedgerSnapshot) -> list[User]:
    """Students who submitted evidence and are waiting for review."""
    return [
        u
        for u in snapshot.users
        if u.role == Role.STUDENT
        and u.verification_status == VerificationStatus.PENDING
        and u.id_card_url
    ]


def recent_admin_logs(snapshot: LedgerSnapshot, limit: int = 50) -> list[AdminLog]:
    return list(reversed(snapshot.admin_logs))[:limit]


class Dashboard(BaseModel):
    """A member's own requests and contributions."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    requests: tuple[FinancialRequest, ...]
    donations: tuple[Donation, ...]
    total_received: float
    total_donated: float


def dashboard(snapshot: LedgerSnapshot, user_id: str) -> Dashboard:
    own_requests = tuple(r for r in snapshot.requests if r.user_id == user_id)
    given = tuple(d for d in snapshot.donations if d.donor_id == user_id)
    return Dashboard(
        user_id=user_id,
        requests=own_requests,
        donations=given,
        total_received=sum(r.amount_raised for r in own_requests),
        total_donated=sum(d.amount for d in given),
    )
