"""Exceptions raised by upstream clients and translated by the routes."""

from __future__ import annotations


class UpstreamError(RuntimeError):
    """An upstream API call failed or returned an unusable payload."""

    def __init__(self, service: str, message: str, *, status_code: int | None = None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class TitleNotFoundError(UpstreamError):
    """The canonical catalog has no record for the requested title."""


class MissingCredentialError(RuntimeError):
    """A required API key is not configured."""

    def __init__(self, service: str, env_var: str):
        super().__init__(
            f"{service} API key is not configured. Set {env_var}."
        )
        self.service = service
        self.env_var = env_var
