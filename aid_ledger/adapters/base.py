"""Interfaces of the collaborators that sit in front of the ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..core.models import PaymentMode


class TextRewriter(ABC):
    """Assistant that tidies request text before it reaches the ledger.

    Implementations must fall back to the caller's own text when the
    service is unavailable; they never raise for service failures.
    """

    @abstractmethod
    async def polish_description(self, title: str, raw_description: str) -> str:
        """Return a clearer version of ``raw_description``."""

    @abstractmethod
    async def suggest_image_keyword(self, title: str, description: str) -> str:
        """Return a short photo search keyword for the request."""


class PaymentProcessor(ABC):
    """Settles a contribution before it is recorded as a donation."""

    mode: PaymentMode = PaymentMode.MOCK

    @abstractmethod
    async def settle(self, request_id: str, donor_id: str, amount: float) -> str:
        """Settle ``amount`` and return a payment reference."""
