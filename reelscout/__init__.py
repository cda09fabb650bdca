"""Top-level package re-exporting the ReelScout title lookup service."""

from __future__ import annotations

from app.main import app, create_app

__all__ = ["app", "create_app"]
