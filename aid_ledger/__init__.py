"""Core package for the aid ledger.

This module exposes the record models, the store and the workflow so that
consumers of the package can simply import them from ``aid_ledger``.
"""

from .core.errors import (
    Conflict,
    Forbidden,
    InvalidArgument,
    LedgerClosed,
    LedgerError,
    NotFound,
    PersistenceFailure,
)
from .core.models import (
    AdminLog,
    Decision,
    Donation,
    FinancialRequest,
    LedgerSnapshot,
    PaymentMode,
    RequestCategory,
    RequestStatus,
    Role,
    UrgencyLevel,
    User,
    VerificationStatus,
)
from .core.storage import LedgerStore
from .notify import Subscription
from .workflow import Workflow

__all__ = [
    "AdminLog",
    "Conflict",
    "Decision",
    "Donation",
    "FinancialRequest",
    "Forbidden",
    "InvalidArgument",
    "LedgerClosed",
    "LedgerError",
    "LedgerSnapshot",
    "LedgerStore",
    "NotFound",
    "PaymentMode",
    "PersistenceFailure",
    "RequestCategory",
    "RequestStatus",
    "Role",
    "Subscription",
    "UrgencyLevel",
    "User",
    "VerificationStatus",
    "Workflow",
]
