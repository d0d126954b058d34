"""Verification and request-lifecycle state machines.

All administrative transitions go through :class:`Workflow` so that no
caller can leave a user or a request in an invalid combination of fields.
Each operation validates its arguments, then reads, checks and writes
inside a single store transaction.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from . import donations
from .config import Settings
from .core.errors import Conflict, Forbidden, InvalidArgument
from .core.models import (
    AdminLog,
    Decision,
    Donation,
    FinancialRequest,
    PaymentMode,
    RequestCategory,
    RequestStatus,
    Role,
    UrgencyLevel,
    User,
    VerificationStatus,
)
from .core.storage import LedgerStore, Transaction

log = logging.getLogger(__name__)

DEFAULT_COLLEGE = "Institutional Guest"
DEFAULT_PHONE = "Not provided"


def urgency_score(level: UrgencyLevel | int, weight: float) -> float:
    """Priority weighting used to order the public feed."""
    return float(UrgencyLevel(level)) * weight


def _build(model: type[BaseModel], **fields: Any) -> Any:
    try:
        return model(**fields)
    except ValidationError as exc:
        raise InvalidArgument(str(exc)) from exc


def _coerce(enum_type: type, value: Any, label: str) -> Any:
    try:
        return enum_type(value)
    except ValueError as exc:
        raise InvalidArgument(f"Invalid {label}: {value!r}") from exc


def _require_admin(admin: User) -> None:
    if admin.role != Role.ADMIN:
        raise Forbidden(f"{admin.full_name} is not an administrator.")


class Workflow:
    """Mutation operations of the ledger."""

    def __init__(self, store: LedgerStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or Settings()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _now(self) -> datetime.datetime:
        return self.store.clock()

    def _log(
        self, txn: Transaction, admin: User, action: str, target_id: str, details: str
    ) -> AdminLog:
        # Log timestamps never go backwards, even if the clock does.
        stamp = self._now()
        previous = txn.last("admin_logs")
        if previous is not None and previous.timestamp > stamp:
            stamp = previous.timestamp
        entry = AdminLog(
            action=action,
            target_id=target_id,
            admin_id=admin.user_id,
            admin_name=admin.full_name,
            timestamp=stamp,
            details=details,
        )
        txn.append(entry)
        return entry

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def register_user(
        self,
        full_name: str,
        email: str,
        role: Role | str = Role.STUDENT,
        college_name: str = "",
        phone: str = "",
        is_email_verified: bool = True,
    ) -> User:
        """Create an account. Admins start verified, students pending."""
        name = full_name.strip()
        address = email.strip().lower()
        if not name or not address:
            raise InvalidArgument("Name and email are required.")
        role = _coerce(Role, role, "role")
        is_admin = role == Role.ADMIN

        with self.store.transaction() as txn:
            if txn.find_user_by_email(address) is not None:
                raise Conflict("This email is already registered.")
            user = _build(
                User,
                full_name=name,
                email=address,
                college_name=college_name.strip() or DEFAULT_COLLEGE,
                phone=phone.strip() or DEFAULT_PHONE,
                role=role,
                avatar=f"https://api.dicebear.com/7.x/shapes/svg?seed={address}",
                created_at=self._now(),
                is_verified=is_admin,
                is_email_verified=is_email_verified,
                verification_status=(
                    VerificationStatus.APPROVED if is_admin else VerificationStatus.PENDING
                ),
            )
            txn.append(user)
        log.info("Registered %s account %s", role.value, user.user_id)
        return user

    # ------------------------------------------------------------------
    # User verification
    # ------------------------------------------------------------------
    def submit_verification(self, user_id: str, institution: str, evidence: str) -> User:
        """Record verification evidence and put the user back in review."""
        institution = institution.strip()
        if not institution or not evidence:
            raise InvalidArgument("Institution and identity evidence are required.")
        with self.store.transaction() as txn:
            user = txn.user(user_id)
            updated = user.model_copy(
                update={
                    "college_name": institution,
                    "id_card_url": evidence,
                    "verification_status": VerificationStatus.PENDING,
                    "is_verified": False,
                }
            )
            txn.replace(updated)
        log.info("User %s submitted verification evidence", user_id)
        return updated

    def decide_verification(self, user_id: str, decision: Decision | str, admin: User) -> User:
        """Approve or reject a user's verification. Always audited."""
        _require_admin(admin)
        decision = _coerce(Decision, decision, "decision")
        with self.store.transaction() as txn:
            user = txn.user(user_id)
            updated = user.model_copy(
                update={
                    "verification_status": VerificationStatus(decision.value),
                    "is_verified": decision == Decision.APPROVED,
                }
            )
            txn.replace(updated)
            self._log(
                txn,
                admin,
                action=f"{decision.value.upper()}_USER",
                target_id=user_id,
                details=f"User {user_id} was {decision.value} by {admin.full_name}",
            )
        log.info("Verification of %s %s by %s", user_id, decision.value, admin.user_id)
        return updated

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------
    def create_request(
        self,
        owner: User | str,
        title: str,
        description: str,
        requested_amount: float,
        category: RequestCategory | str = RequestCategory.OTHER,
        urgency_level: UrgencyLevel | int = UrgencyLevel.MEDIUM,
        hide_identity: bool = False,
        deadline: datetime.date | None = None,
        image_url: str | None = None,
    ) -> FinancialRequest:
        """File a new request in ``pending`` with nothing raised."""
        owner_id = owner.user_id if isinstance(owner, User) else owner
        title = title.strip()
        requested_amount = donations.check_amount(requested_amount, "Requested amount")
        if not title:
            raise InvalidArgument("A title is required.")
        category = _coerce(RequestCategory, category, "category")
        level = _coerce(UrgencyLevel, urgency_level, "urgency level")

        with self.store.transaction() as txn:
            account = txn.user(owner_id)
            now = self._now()
            request = _build(
                FinancialRequest,
                user_id=owner_id,
                student_name=account.full_name,
                title=title,
                description=description.strip(),
                category=category,
                requested_amount=requested_amount,
                amount_raised=0.0,
                urgency_level=level,
                urgency_score=urgency_score(level, self.settings.urgency_weight),
                hide_identity=hide_identity,
                status=RequestStatus.PENDING,
                created_at=now,
                deadline=deadline,
                image_url=image_url,
            )
            txn.append(request)
            txn.replace(account.model_copy(update={"last_request_date": now}))
        log.info("Request %s filed by %s", request.request_id, owner_id)
        return request

    def decide_request(
        self, request_id: str, decision: Decision | str, admin: User
    ) -> FinancialRequest:
        """Approve or reject a pending request. Already-decided requests conflict."""
        _require_admin(admin)
        decision = _coerce(Decision, decision, "decision")
        with self.store.transaction() as txn:
            request = txn.request(request_id)
            if request.status != RequestStatus.PENDING:
                raise Conflict(f"Request {request_id} is already {request.status.value}.")
            changes: dict[str, Any] = {"status": RequestStatus(decision.value)}
            if decision == Decision.APPROVED:
                changes["approved_at"] = self._now()
            updated = request.model_copy(update=changes)
            txn.replace(updated)
            self._log(
                txn,
                admin,
                action=f"{decision.value.upper()}_REQUEST",
                target_id=request_id,
                details=f"Request {request_id} was {decision.value} by {admin.full_name}",
            )
        log.info("Request %s %s by %s", request_id, decision.value, admin.user_id)
        return updated

    # ------------------------------------------------------------------
    # Donations
    # ------------------------------------------------------------------
    def record_donation(
        self,
        request_id: str,
        donor: User,
        amount: float,
        payment_mode: PaymentMode | str = PaymentMode.MOCK,
    ) -> Donation:
        return donations.record_donation(
            self.store,
            request_id,
            donor,
            amount,
            payment_mode=payment_mode,
            require_verified=self.settings.require_verified_donors,
        )
