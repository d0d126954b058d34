"""Data models for the aid ledger's core records.

The models are implemented using :mod:`pydantic` so that they provide
runtime validation and convenient serialisation to and from dictionaries.
All of them are frozen: a change to a record is expressed by building a
new copy, which lets snapshots be shared freely between readers.
"""

from __future__ import annotations

import datetime
import enum
import uuid
from datetime import UTC

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(tz=UTC)


def new_id(prefix: str) -> str:
    """Return a random identifier such as ``d_3f9c0a1b2c4d``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Role(enum.StrEnum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


class VerificationStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequestStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CLOSED = "closed"


class RequestCategory(enum.StrEnum):
    FEES = "fees"
    MEDICAL = "medical"
    HOUSING = "housing"
    OTHER = "other"


class UrgencyLevel(enum.IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3


class Decision(enum.StrEnum):
    """Outcome an administrator may pick for a user or a request."""

    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMode(enum.StrEnum):
    MOCK = "mock"
    TEST = "test"


class _Record(BaseModel):
    # inf and nan would be written to JSON as null and fail to load back.
    model_config = ConfigDict(frozen=True, extra="ignore", allow_inf_nan=False)


class User(_Record):
    """A participant account.

    Attributes
    ----------
    user_id:
        Immutable unique identifier.
    email:
        Unique across the ledger, compared case-insensitively.
    is_verified:
        Admin approval flag. Always equal to
        ``verification_status == "approved"``.
    is_email_verified:
        Set by the identity collaborator at sign-up.
    id_card_url:
        Reference to the evidence submitted for verification, if any.

    """

    user_id: str = Field(default_factory=lambda: new_id("u"))
    full_name: str = Field(min_length=1)
    college_name: str = ""
    email: str = Field(min_length=3)
    phone: str = ""
    role: Role = Role.STUDENT
    avatar: str = ""
    created_at: datetime.datetime = Field(default_factory=utcnow)
    is_verified: bool = False
    is_email_verified: bool = False
    verification_status: VerificationStatus = VerificationStatus.PENDING
    id_card_url: str | None = None
    last_request_date: datetime.datetime | None = None

    @model_validator(mode="after")
    def check_verified_matches_status(self) -> User:
        if self.is_verified != (self.verification_status == VerificationStatus.APPROVED):
            raise ValueError("is_verified must be true exactly when verification_status is approved")
        return self

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class FinancialRequest(_Record):
    """A funding ask raised by a student."""

    request_id: str = Field(default_factory=lambda: new_id("r"))
    user_id: str
    student_name: str = ""
    title: str = Field(min_length=1)
    description: str = ""
    category: RequestCategory = RequestCategory.OTHER
    requested_amount: float = Field(gt=0)
    amount_raised: float = Field(default=0.0, ge=0)
    urgency_level: UrgencyLevel = UrgencyLevel.MEDIUM
    urgency_score: float = 0.0
    hide_identity: bool = False
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime.datetime = Field(default_factory=utcnow)
    approved_at: datetime.datetime | None = None
    deadline: datetime.date | None = None
    image_url: str | None = None

    @property
    def funding_gap(self) -> float:
        return self.requested_amount - self.amount_raised


class Donation(_Record):
    """An immutable contribution towards one request."""

    donation_id: str = Field(default_factory=lambda: new_id("d"))
    request_id: str
    donor_id: str
    donor_name: str
    amount: float = Field(gt=0)
    payment_mode: PaymentMode = PaymentMode.MOCK
    timestamp: datetime.datetime = Field(default_factory=utcnow)


class AdminLog(_Record):
    """Audit entry written for every administrative state change."""

    log_id: str = Field(default_factory=lambda: new_id("log"))
    action: str
    target_id: str
    admin_id: str
    admin_name: str
    timestamp: datetime.datetime = Field(default_factory=utcnow)
    details: str | None = None


class LedgerSnapshot(_Record):
    """The four collections as of one logical instant.

    ``version`` grows by one with every committed mutation and is not
    persisted; subscribers use it to discard stale deliveries.
    """

    users: tuple[User, ...] = ()
    requests: tuple[FinancialRequest, ...] = ()
    donations: tuple[Donation, ...] = ()
    admin_logs: tuple[AdminLog, ...] = ()
    version: int = Field(default=0, exclude=True)

    def user(self, user_id: str) -> User | None:
        return next((u for u in self.users if u.user_id == user_id), None)

    def request(self, request_id: str) -> FinancialRequest | None:
        return next((r for r in self.requests if r.request_id == request_id), None)

    def donations_for(self, request_id: str) -> list[Donation]:
        return [d for d in self.donations if d.request_id == request_id]


COLLECTIONS: dict[str, tuple[type[_Record], str]] = {
    "users": (User, "user_id"),
    "requests": (FinancialRequest, "request_id"),
    "donations": (Donation, "donation_id"),
    "admin_logs": (AdminLog, "log_id"),
}
