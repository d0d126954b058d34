"""Collaborators that run before the ledger is called."""

from .base import PaymentProcessor, TextRewriter
from .gemini import GeminiRewriter
from .payment import MockPaymentProcessor

__all__ = ["GeminiRewriter", "MockPaymentProcessor", "PaymentProcessor", "TextRewriter"]
