"""Demo dataset used when no ledger has been persisted yet."""

from __future__ import annotations

import datetime
from datetime import UTC

from .models import (
    Donation,
    FinancialRequest,
    LedgerSnapshot,
    RequestCategory,
    RequestStatus,
    Role,
    UrgencyLevel,
    User,
    VerificationStatus,
)

# Fixed so that two loads of the seed compare equal.
SEED_EPOCH = datetime.datetime(2024, 11, 1, 9, 0, tzinfo=UTC)

COMMUNITY_POOL_ID = "u_pool"


def _ago(hours: float) -> datetime.datetime:
    return SEED_EPOCH - datetime.timedelta(hours=hours)


def _avatar(seed: str) -> str:
    return f"https://api.dicebear.com/7.x/shapes/svg?seed={seed}"


def default_seed() -> LedgerSnapshot:
    """Return the seed ledger: two accounts, demo requests and their funding."""
    users = (
        User(
            user_id="u1",
            full_name="Ankita Das",
            email="ankita.das@iitd.ac.in",
            college_name="IIT Delhi",
            phone="9876543210",
            role=Role.STUDENT,
            avatar=_avatar("Ankita"),
            created_at=SEED_EPOCH,
            is_verified=True,
            is_email_verified=True,
            verification_status=VerificationStatus.APPROVED,
        ),
        User(
            user_id="u_admin",
            full_name="Admin Overseer",
            email="audit@studentaid.network",
            college_name="System Governance",
            phone="0000000000",
            role=Role.ADMIN,
            avatar=_avatar("Admin"),
            created_at=SEED_EPOCH,
            is_verified=True,
            is_email_verified=True,
            verification_status=VerificationStatus.APPROVED,
        ),
    )

    requests = (
        FinancialRequest(
            request_id="r1",
            user_id="u2",
            student_name="Rahul Mehra",
            title="Final Semester Hostel & Mess Fees Assistance",
            description=(
                "My father unexpectedly fell ill and our household income has been "
                "diverted to medical bills. I need help covering my final semester "
                "hostel and food charges so I can focus on placements."
            ),
            category=RequestCategory.HOUSING,
            requested_amount=48000,
            amount_raised=18200,
            urgency_level=UrgencyLevel.HIGH,
            urgency_score=90,
            deadline=datetime.date(2024, 12, 25),
            status=RequestStatus.APPROVED,
            created_at=_ago(0),
            approved_at=SEED_EPOCH,
        ),
        FinancialRequest(
            request_id="r2",
            user_id="u4",
            student_name="Priya Verma",
            title="Advanced Engineering Textbooks & Software License",
            description=(
                "Specialised structural engineering software and three core "
                "textbooks required for my dissertation, not available in the "
                "college library."
            ),
            category=RequestCategory.OTHER,
            requested_amount=12500,
            amount_raised=4200,
            urgency_level=UrgencyLevel.MEDIUM,
            urgency_score=50,
            status=RequestStatus.APPROVED,
            created_at=_ago(48),
            approved_at=_ago(47),
        ),
        FinancialRequest(
            request_id="r3",
            user_id="u5",
            student_name="Anonymous Peer",
            title="Wisdom Tooth Extraction & Post-Op Medication",
            description=(
                "Impacted wisdom teeth need urgent extraction. Student insurance "
                "only covers 20% of the surgical costs."
            ),
            category=RequestCategory.MEDICAL,
            requested_amount=8500,
            amount_raised=6100,
            urgency_level=UrgencyLevel.HIGH,
            urgency_score=95,
            hide_identity=True,
            status=RequestStatus.APPROVED,
            created_at=_ago(120),
            approved_at=_ago(119),
        ),
        FinancialRequest(
            request_id="r4",
            user_id="u6",
            student_name="Kabir Singh",
            title="Shared Student Housing Security Deposit",
            description=(
                "The campus hostel is full and I am moving to a shared flat. I "
                "need to pay the security deposit to secure it."
            ),
            category=RequestCategory.HOUSING,
            requested_amount=15000,
            amount_raised=2000,
            urgency_level=UrgencyLevel.LOW,
            urgency_score=25,
            status=RequestStatus.APPROVED,
            created_at=_ago(24),
            approved_at=_ago(23),
        ),
        FinancialRequest(
            request_id="r_pending_1",
            user_id="u7",
            student_name="Sanya Malhotra",
            title="Commute Support for Research Internship",
            description="A monthly bus pass for a three month internship 30km away.",
            category=RequestCategory.OTHER,
            requested_amount=4500,
            urgency_level=UrgencyLevel.MEDIUM,
            urgency_score=45,
            created_at=_ago(1),
        ),
        FinancialRequest(
            request_id="r_pending_3",
            user_id="u9",
            student_name="Meera Nair",
            title="Architecture Drafting Board & Supplies",
            description=(
                "A drafting board, T-squares and drawing sets required for my "
                "first studio project."
            ),
            category=RequestCategory.OTHER,
            requested_amount=9200,
            urgency_level=UrgencyLevel.HIGH,
            urgency_score=80,
            created_at=_ago(3),
        ),
    )

    # Opening balances of the demo requests, recorded as donations so the
    # raised totals reconcile from the first load.
    donations = tuple(
        Donation(
            donation_id=f"d_seed_{r.request_id}",
            request_id=r.request_id,
            donor_id=COMMUNITY_POOL_ID,
            donor_name="Community Pool",
            amount=r.amount_raised,
            timestamp=r.approved_at or SEED_EPOCH,
        )
        for r in requests
        if r.amount_raised > 0
    )

    return LedgerSnapshot(users=users, requests=requests, donations=donations)
