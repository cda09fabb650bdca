"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import Settings  # noqa: E402

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


def build_settings(**overrides: Any) -> Settings:
    """Return a settings object with API keys suitable for tests."""

    base: dict[str, Any] = {
        "TMDB_API_KEY": "tmdb-key",
        "OMDB_API_KEY": "omdb-key",
        "WATCHMODE_API_KEY": "watchmode-key",
        "OPENAI_API_KEY": "openai-key",
    }
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


def mock_http_client(handler: Handler, base_url: str = "https://api.example.com") -> httpx.AsyncClient:
    """Return an AsyncClient whose requests are answered by ``handler``."""

    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)
