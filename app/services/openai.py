"""Integration helpers for the OpenAI chat completions API."""

from __future__ import annotations

import logging

import httpx

from ..config import Settings
from ..errors import MissingCredentialError, UpstreamError

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Client responsible for talking to OpenAI's /chat/completions endpoint."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def complete(
        self,
        system_prompt: str,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 300,
    ) -> str:
        """Return the text of the first completion choice."""

        api_key = self._settings.openai_api_key
        if not api_key:
            raise MissingCredentialError("OpenAI", "OPENAI_API_KEY")

        payload = {
            "model": self._settings.openai_model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = await self._client.post(
                "/chat/completions", json=payload, headers=headers
            )
        except httpx.HTTPError as exc:
            raise UpstreamError("OpenAI", f"completion request failed: {exc}") from exc
        if response.status_code >= 400:
            raise UpstreamError(
                "OpenAI",
                f"completion returned HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError("OpenAI", "completion returned invalid JSON") from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise UpstreamError("OpenAI", "completion returned no choices")
        message = choices[0].get("message") or {}
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise UpstreamError("OpenAI", "completion returned empty content")
        return content
