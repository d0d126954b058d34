"""Gemini-backed :class:`~aid_ledger.adapters.base.TextRewriter`.

Talks to the Generative Language REST API with :mod:`httpx`. Any failure
(no key, network error, unexpected payload) is logged and the caller's
text is returned unchanged, so request creation never depends on it.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .base import TextRewriter

log = logging.getLogger(__name__)

DEFAULT_KEYWORD = "university study"

POLISH_PROMPT = """I am writing a request for financial aid as a student.
Title: {title}
Draft: {draft}

Please rewrite this to be respectful, clear, and focused on the facts, while \
maintaining the sense of urgency. Keep it concise."""

KEYWORD_PROMPT = """Given a student financial aid request title and description, \
suggest ONE specific search keyword (max 3 words) that would return a relevant, \
high-quality photograph.

Title: {title}
Description: {description}

Return ONLY the keyword."""


class GeminiRewriter(TextRewriter):
    """Rewriter that sends prompts to a Gemini model."""

    api_base = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Store the ``api_key``, ``model`` name and optional HTTP ``client``."""
        self.api_key = api_key
        self.model = model
        self.client = client or httpx.AsyncClient(timeout=10.0)

    # ------------------------------------------------------------------
    async def _generate(self, prompt: str) -> str:
        url = f"{self.api_base}/models/{self.model}:generateContent"
        headers = {"x-goog-api-key": self.api_key}
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        response = await self.client.post(url, json=payload, headers=headers)
        response.raise_for_status()
        data: dict[str, Any] = response.json()
        return str(data["candidates"][0]["content"]["parts"][0]["text"])

    async def _try_generate(self, prompt: str) -> str | None:
        if not self.api_key:
            return None
        try:
            return await self._generate(prompt)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            log.warning("Gemini request failed: %s", exc)
            return None

    async def polish_description(self, title: str, raw_description: str) -> str:
        """Return a polished description, or ``raw_description`` on failure."""
        text = await self._try_generate(
            POLISH_PROMPT.format(title=title, draft=raw_description)
        )
        return text.strip() if text and text.strip() else raw_description

    async def suggest_image_keyword(self, title: str, description: str) -> str:
        text = await self._try_generate(
            KEYWORD_PROMPT.format(title=title, description=description)
        )
        keyword = (text or "").strip().replace('"', "")
        return keyword or DEFAULT_KEYWORD

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
