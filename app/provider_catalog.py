"""Provider name tables used when reconciling watch availability."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:  # pragma: no cover - import only for typing
    from .config import Settings


OfferType = Literal["streaming", "rent", "buy"]

# Watchmode source types mapped onto the three offer categories.
SOURCE_TYPE_OFFERS: dict[str, OfferType] = {
    "sub": "streaming",
    "free": "streaming",
    "tve": "streaming",
    "rent": "rent",
    "buy": "buy",
}

NAME_SUFFIXES: tuple[str, ...] = (
    "standard with ads",
    "basic with ads",
    "with ads",
    "ad-free",
    "ad free",
    "premium",
    "plus",
    "streaming",
    "subscription",
    "tv",
)

APPLE_TV_KEY = "apple tv"

DEFAULT_REGION_ALIASES: tuple[str, ...] = ("US", "USA", "UNITED STATES")

DEFAULT_PROVIDER_ALLOW_LIST: tuple[str, ...] = (
    "netflix",
    "hulu",
    "disney plus",
    "disney+",
    "max",
    "hbo max",
    "hbo",
    "hbo go",
    "paramount+",
    "paramount plus",
    "peacock",
    "apple tv",
    "apple tv+",
    "apple tv plus",
    "prime video",
    "amazon prime video",
    "amazon video",
    "showtime",
    "starz",
    "crunchyroll",
    "funimation",
    "espn+",
    "youtube",
    "youtube premium",
    "youtube tv",
    "sling tv",
    "fubo",
    "fubotv",
    "philo",
    "directv stream",
    "amc+",
    "shudder",
    "tubi",
    "tubi tv",
    "pluto tv",
    "crackle",
    "imdb tv",
    "freevee",
    "the roku channel",
    "vudu",
    "fandango at home",
    "google play movies",
    "microsoft store",
    "plex",
    "redbox",
    "mgm+",
    "britbox",
    "criterion channel",
    "mubi",
    "kanopy",
    "hoopla",
)

DEFAULT_PROVIDER_DENY_LIST: tuple[str, ...] = (
    "skyshowtime",
    "sky showtime",
    "sky go",
    "sky",
    "now tv",
    "nowtv",
    "stan",
    "binge",
    "foxtel",
    "hotstar",
    "movistar",
    "bbc iplayer",
    "bbc",
    "all 4",
    "itv",
    "channel 4",
    "rtl",
    "zdf",
    "ard",
    "arte",
    "canal+",
    "tf1",
    "m6",
    "rai",
    "mediaset",
    "crave",
    "hbo nordic",
    "hbo espana",
    "hbo max latino",
    "hbo max brazil",
)

DEFAULT_DEEP_LINK_FALLBACKS: dict[str, str] = {
    "netflix": "https://www.netflix.com/search?q={query}",
}


def collapse_name(name: str | None) -> str:
    """Lower-case, trim and collapse internal whitespace."""

    return " ".join(str(name or "").lower().split())


def normalize_provider_name(name: str | None) -> str:
    """Return the deduplication key for a provider display name.

    Name variants such as ``Peacock Premium`` or ``Paramount Plus`` share a
    key with their base service. Every ``Apple TV`` flavour maps to a single
    key because the catalogs disagree on the suffix.
    """

    collapsed = collapse_name(name)
    if not collapsed:
        return ""
    if collapsed.startswith(APPLE_TV_KEY):
        return APPLE_TV_KEY
    # Suffixes stack ("Paramount+ Premium", "Peacock Premium Plus").
    key = ""
    stripped = collapsed
    while stripped != key:
        key = stripped
        stripped = key.rstrip("+").strip()
        for suffix in NAME_SUFFIXES:
            if stripped.endswith(f" {suffix}"):
                stripped = stripped[: -len(suffix) - 1].strip()
                break
    return key or collapsed


@dataclass(frozen=True)
class ProviderRules:
    """Allow/deny tables plus region aliases applied during reconciliation."""

    allow_list: tuple[str, ...] = DEFAULT_PROVIDER_ALLOW_LIST
    deny_list: tuple[str, ...] = DEFAULT_PROVIDER_DENY_LIST
    region: str = "US"
    region_aliases: tuple[str, ...] = DEFAULT_REGION_ALIASES
    deep_link_fallbacks: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_DEEP_LINK_FALLBACKS)
    )
    suppress_rent_buy_when_streaming: bool = True
    _allow_keys: frozenset[str] = field(init=False, repr=False, compare=False)
    _deny_patterns: tuple[re.Pattern[str], ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        allow_keys = {normalize_provider_name(name) for name in self.allow_list}
        object.__setattr__(self, "_allow_keys", frozenset(filter(None, allow_keys)))
        patterns = tuple(
            re.compile(rf"(?<![\w+]){re.escape(collapse_name(name))}(?![\w+])")
            for name in self.deny_list
            if collapse_name(name)
        )
        object.__setattr__(self, "_deny_patterns", patterns)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ProviderRules":
        return cls(
            allow_list=settings.provider_allow_list,
            deny_list=settings.provider_deny_list,
            region=settings.provider_region,
            region_aliases=settings.region_aliases,
            deep_link_fallbacks=dict(settings.deep_link_fallbacks),
            suppress_rent_buy_when_streaming=settings.suppress_rent_buy_when_streaming,
        )

    def is_denied(self, name: str | None) -> bool:
        collapsed = collapse_name(name)
        return any(pattern.search(collapsed) for pattern in self._deny_patterns)

    def is_allowed(self, name: str | None) -> bool:
        """Return ``True`` for recognised services that are not deny-listed."""

        if self.is_denied(name):
            return False
        key = normalize_provider_name(name)
        if not key:
            return False
        if key in self._allow_keys:
            return True
        if key == APPLE_TV_KEY:
            return False
        collapsed = collapse_name(name)
        return any(
            len(allowed) >= 4 and allowed in collapsed
            for allowed in self._allow_keys
            if allowed != APPLE_TV_KEY
        )

    def is_home_region(self, region: str | None) -> bool:
        value = collapse_name(region).upper()
        if not value:
            return False
        return value == self.region or value in self.region_aliases

    def fallback_deep_link(self, provider_key: str) -> str | None:
        return self.deep_link_fallbacks.get(provider_key)
