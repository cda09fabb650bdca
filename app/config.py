"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .provider_catalog import (
    DEFAULT_DEEP_LINK_FALLBACKS,
    DEFAULT_PROVIDER_ALLOW_LIST,
    DEFAULT_PROVIDER_DENY_LIST,
    DEFAULT_REGION_ALIASES,
    normalize_provider_name,
)


def _split_list(value: object, *, name: str) -> list[str]:
    if isinstance(value, str):
        raw_values = [part.strip() for part in value.split(",")]
    elif isinstance(value, Iterable):
        raw_values = [str(part).strip() for part in value]
    else:
        raise TypeError(f"{name} must be a string or iterable of strings")
    return [entry for entry in raw_values if entry]


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="ReelScout", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    omdb_api_key: str | None = Field(default=None, alias="OMDB_API_KEY")
    watchmode_api_key: str | None = Field(default=None, alias="WATCHMODE_API_KEY")
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")

    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    omdb_api_url: HttpUrl = Field(
        default="https://www.omdbapi.com", alias="OMDB_API_URL"
    )
    watchmode_api_url: HttpUrl = Field(
        default="https://api.watchmode.com/v1", alias="WATCHMODE_API_URL"
    )
    openai_api_url: HttpUrl = Field(
        default="https://api.openai.com/v1", alias="OPENAI_API_URL"
    )

    http_timeout_seconds: float = Field(
        default=10.0, alias="HTTP_TIMEOUT", gt=0, le=60
    )
    optional_call_timeout_seconds: float = Field(
        default=8.0, alias="OPTIONAL_CALL_TIMEOUT", gt=0, le=60
    )

    provider_region: str = Field(default="US", alias="PROVIDER_REGION")
    region_aliases: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_REGION_ALIASES, alias="US_REGION_ALIASES"
    )
    provider_allow_list: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_PROVIDER_ALLOW_LIST, alias="PROVIDER_ALLOW_LIST"
    )
    provider_deny_list: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_PROVIDER_DENY_LIST, alias="PROVIDER_DENY_LIST"
    )
    deep_link_fallbacks: Annotated[dict[str, str], NoDecode] = Field(
        default_factory=lambda: dict(DEFAULT_DEEP_LINK_FALLBACKS),
        alias="DEEP_LINK_FALLBACKS",
    )
    suppress_rent_buy_when_streaming: bool = Field(
        default=True, alias="SUPPRESS_RENT_BUY_WHEN_STREAMING"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("provider_allow_list", "provider_deny_list", mode="before")
    @classmethod
    def _parse_provider_names(
        cls, value: object, info: ValidationInfo
    ) -> tuple[str, ...]:
        """Normalise provider name lists from environment values."""

        if value is None:
            if info.field_name == "provider_allow_list":
                return DEFAULT_PROVIDER_ALLOW_LIST
            return DEFAULT_PROVIDER_DENY_LIST
        cleaned: list[str] = []
        for entry in _split_list(value, name=info.field_name.upper()):
            name = " ".join(entry.lower().split())
            if name not in cleaned:
                cleaned.append(name)
        return tuple(cleaned)

    @field_validator("region_aliases", mode="before")
    @classmethod
    def _parse_region_aliases(cls, value: object) -> tuple[str, ...]:
        if value is None:
            return DEFAULT_REGION_ALIASES
        aliases = _split_list(value, name="US_REGION_ALIASES")
        if not aliases:
            return DEFAULT_REGION_ALIASES
        return tuple(alias.upper() for alias in aliases)

    @field_validator("provider_region", mode="before")
    @classmethod
    def _parse_region(cls, value: object) -> str:
        region = str(value or "").strip().upper()
        if len(region) != 2 or not region.isalpha():
            raise ValueError("PROVIDER_REGION must be a two-letter country code")
        return region

    @field_validator("deep_link_fallbacks", mode="before")
    @classmethod
    def _parse_deep_link_fallbacks(cls, value: object) -> dict[str, str]:
        """Accept ``provider=template`` pairs separated by commas."""

        if value is None:
            return dict(DEFAULT_DEEP_LINK_FALLBACKS)
        if isinstance(value, dict):
            pairs = value.items()
        else:
            pairs = []
            for entry in _split_list(value, name="DEEP_LINK_FALLBACKS"):
                provider, sep, template = entry.partition("=")
                if not sep:
                    raise ValueError(
                        "DEEP_LINK_FALLBACKS entries must use provider=template"
                    )
                pairs.append((provider, template))
        templates: dict[str, str] = {}
        for provider, template in pairs:
            key = normalize_provider_name(str(provider))
            if not key:
                raise ValueError("DEEP_LINK_FALLBACKS entries need a provider name")
            template = str(template).strip()
            if "{query}" not in template:
                raise ValueError("Deep link templates must contain {query}")
            templates[key] = template
        return templates

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
