"""Mock payment settlement."""

from __future__ import annotations

import asyncio
import logging

from ..core.models import PaymentMode, new_id
from .base import PaymentProcessor

log = logging.getLogger(__name__)


class MockPaymentProcessor(PaymentProcessor):
    """Pretends to settle a payment after ``delay`` seconds."""

    def __init__(self, delay: float = 1.5, mode: PaymentMode = PaymentMode.MOCK) -> None:
        self.delay = delay
        self.mode = mode

    async def settle(self, request_id: str, donor_id: str, amount: float) -> str:
        await asyncio.sleep(self.delay)
        reference = new_id("pay")
        log.debug("Settled %.2f from %s to %s as %s", amount, donor_id, request_id, reference)
        return reference
