"""Tests for merging TMDB watch providers with Watchmode sources."""

from __future__ import annotations

from typing import cast

import pytest

from app.errors import MissingCredentialError, UpstreamError
from app.models import RawOffer, TitleRef
from app.provider_catalog import ProviderRules, normalize_provider_name
from app.services.reconciliation import (
    ProviderReconciler,
    build_pricing_index,
    match_priced_source,
    merge_availability,
)
from app.services.tmdb import RegionalProviders, TMDBClient, WatchProvider
from app.services.watchmode import WatchmodeClient

RULES = ProviderRules()
REF = TitleRef(media_type="movie", catalog_id=603)


def _providers(*names: str) -> list[WatchProvider]:
    return [
        WatchProvider(provider_id=index, name=name, logo_url=f"https://img/{index}.png")
        for index, name in enumerate(names)
    ]


def _source(name: str, kind: str, *, region: str = "US", price=None, url=None) -> RawOffer:
    return RawOffer(name=name, kind=kind, region=region, price=price, web_url=url)


class StubTMDB:
    def __init__(self, regions=None, error: Exception | None = None):
        self._regions = regions or {}
        self._error = error

    async def get_watch_providers(self, ref: TitleRef):
        if self._error:
            raise self._error
        return self._regions


class StubWatchmode:
    def __init__(self, offers=None, error: Exception | None = None):
        self._offers = offers or []
        self._error = error
        self.calls: list[str] = []

    async def find_by_external_id(self, imdb_id: str):
        self.calls.append(imdb_id)
        if self._error:
            raise self._error
        return self._offers


def _reconciler(tmdb: StubTMDB, watchmode: StubWatchmode, rules: ProviderRules = RULES) -> ProviderReconciler:
    return ProviderReconciler(
        cast(TMDBClient, tmdb), cast(WatchmodeClient, watchmode), rules
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Peacock Premium", "peacock"),
        ("Peacock", "peacock"),
        ("Paramount Plus", "paramount"),
        ("Paramount+", "paramount"),
        ("  Netflix   Standard with Ads ", "netflix"),
        ("Apple TV+", "apple tv"),
        ("Apple TV Plus", "apple tv"),
        ("Max", "max"),
        ("Peacock Premium Plus", "peacock"),
        ("Paramount Plus Premium", "paramount"),
        ("Paramount+ Premium", "paramount"),
        ("Paramount+ with Ads", "paramount"),
    ],
)
def test_normalize_provider_name_collapses_variants(raw: str, expected: str) -> None:
    assert normalize_provider_name(raw) == expected


def test_rules_drop_regional_and_unknown_services() -> None:
    assert RULES.is_allowed("Netflix")
    assert RULES.is_allowed("Starz")
    assert RULES.is_allowed("Apple TV Plus")
    assert not RULES.is_allowed("BBC iPlayer")
    assert not RULES.is_allowed("Sky Go")
    assert not RULES.is_allowed("HBO Max Latino")
    assert not RULES.is_allowed("Some Regional Channel")
    assert not RULES.is_allowed("Apple iTunes")


def test_merge_dedupes_variants_within_category() -> None:
    presence = RegionalProviders(
        streaming=_providers("Peacock", "Peacock Premium", "Netflix", "Netflix basic with Ads"),
    )

    availability = merge_availability(presence, [], RULES, title="Oppenheimer")

    names = [offer.provider for offer in availability.streaming]
    assert names == ["Peacock", "Netflix"]
    keys = [normalize_provider_name(name) for name in names]
    assert len(keys) == len(set(keys))


def test_merge_dedupes_stacked_suffix_variants() -> None:
    presence = RegionalProviders(
        streaming=_providers(
            "Peacock Premium",
            "Peacock Premium Plus",
            "Paramount Plus",
            "Paramount Plus Premium",
            "Paramount+ Premium",
        ),
    )

    availability = merge_availability(presence, [], RULES, title="Yellowstone")

    assert [offer.provider for offer in availability.streaming] == [
        "Peacock Premium",
        "Paramount Plus",
    ]


def test_merge_enriches_with_us_pricing() -> None:
    presence = RegionalProviders(
        rent=_providers("Amazon Video", "Apple TV"),
        buy=_providers("Amazon Video"),
    )
    pricing = [
        _source("Amazon", "rent", price="$3.99", url="https://amazon.com/rent"),
        _source("Amazon", "rent", region="GB", price="£2.49", url="https://amazon.co.uk"),
        _source("AppleTV", "rent", price="$4.99", url="https://tv.apple.com/x"),
        _source("Amazon", "buy", price="$14.99", url="https://amazon.com/buy"),
    ]

    availability = merge_availability(presence, pricing, RULES, title="Dune")

    assert [(offer.provider, offer.price, offer.deep_link) for offer in availability.rent] == [
        ("Amazon Video", "$3.99", "https://amazon.com/rent"),
        ("Apple TV", "$4.99", "https://tv.apple.com/x"),
    ]
    assert availability.buy[0].price == "$14.99"
    assert availability.buy[0].deep_link == "https://amazon.com/buy"


def test_pricing_index_keeps_subscription_over_free_listing() -> None:
    pricing = [
        _source("Peacock", "free", url="https://peacock/free"),
        _source("Peacock Premium", "sub", url="https://peacock/sub"),
        _source("Netflix", "sub", region="Canada", url="https://netflix.ca"),
        _source("Hulu", "sub", region="United States", url="https://hulu.com/x"),
    ]

    index = build_pricing_index(pricing, RULES)

    assert index["streaming"]["peacock"].deep_link == "https://peacock/sub"
    assert "netflix" not in index["streaming"]
    assert index["streaming"]["hulu"].deep_link == "https://hulu.com/x"


def test_match_priced_source_falls_back_to_substring() -> None:
    index = build_pricing_index(
        [_source("Amazon Prime Video", "sub", url="https://amazon.com/prime")], RULES
    )

    match = match_priced_source("prime video", index["streaming"])

    assert match is not None
    assert match.deep_link == "https://amazon.com/prime"
    assert match_priced_source("max", index["streaming"]) is None


def test_unmatched_provider_is_kept_without_price() -> None:
    presence = RegionalProviders(streaming=_providers("Hulu"))

    availability = merge_availability(presence, [], RULES)

    assert len(availability.streaming) == 1
    offer = availability.streaming[0]
    assert offer.provider == "Hulu"
    assert offer.price is None
    assert offer.deep_link is None
    assert offer.logo_url == "https://img/0.png"


def test_netflix_gets_search_deep_link_fallback() -> None:
    presence = RegionalProviders(streaming=_providers("Netflix"))

    availability = merge_availability(presence, [], RULES, title="The Night Agent")

    assert availability.streaming[0].deep_link == (
        "https://www.netflix.com/search?q=The%20Night%20Agent"
    )


def test_streaming_suppresses_rent_and_buy() -> None:
    presence = RegionalProviders(
        streaming=_providers("Max"),
        rent=_providers("Amazon Video"),
        buy=_providers("Vudu"),
    )

    availability = merge_availability(presence, [], RULES)

    assert [offer.provider for offer in availability.streaming] == ["Max"]
    assert availability.rent == []
    assert availability.buy == []


def test_rent_and_buy_kept_when_suppression_disabled() -> None:
    rules = ProviderRules(suppress_rent_buy_when_streaming=False)
    presence = RegionalProviders(
        streaming=_providers("Max"),
        rent=_providers("Amazon Video"),
        buy=_providers("Vudu"),
    )

    availability = merge_availability(presence, [], rules)

    assert [offer.provider for offer in availability.rent] == ["Amazon Video"]
    assert [offer.provider for offer in availability.buy] == ["Vudu"]


def test_rent_and_buy_shown_without_streaming() -> None:
    presence = RegionalProviders(
        streaming=_providers("BBC iPlayer"),
        rent=_providers("Amazon Video"),
    )

    availability = merge_availability(presence, [], RULES)

    assert availability.streaming == []
    assert [offer.provider for offer in availability.rent] == ["Amazon Video"]


@pytest.mark.anyio("asyncio")
async def test_reconcile_without_us_region_is_empty() -> None:
    tmdb = StubTMDB({"GB": RegionalProviders(streaming=_providers("Netflix"))})
    watchmode = StubWatchmode([_source("Netflix", "sub", url="https://netflix.com/title/1")])

    availability = await _reconciler(tmdb, watchmode).reconcile(REF, "tt0133093", "The Matrix")

    assert availability.to_payload() == {"streaming": [], "rent": [], "buy": []}


@pytest.mark.anyio("asyncio")
async def test_reconcile_survives_pricing_failure() -> None:
    tmdb = StubTMDB({"US": RegionalProviders(streaming=_providers("Netflix", "Hulu"))})
    watchmode = StubWatchmode(error=UpstreamError("Watchmode", "boom"))

    availability = await _reconciler(tmdb, watchmode).reconcile(REF, "tt0133093", "The Matrix")

    assert [offer.provider for offer in availability.streaming] == ["Netflix", "Hulu"]
    assert availability.streaming[0].deep_link == "https://www.netflix.com/search?q=The%20Matrix"
    assert availability.streaming[1].deep_link is None


@pytest.mark.anyio("asyncio")
async def test_reconcile_presence_failure_yields_empty_set() -> None:
    tmdb = StubTMDB(error=MissingCredentialError("TMDB", "TMDB_API_KEY"))
    watchmode = StubWatchmode([_source("Netflix", "sub")])

    availability = await _reconciler(tmdb, watchmode).reconcile(REF, "tt0133093", "The Matrix")

    assert availability.is_empty()


@pytest.mark.anyio("asyncio")
async def test_reconcile_skips_pricing_without_imdb_id() -> None:
    tmdb = StubTMDB({"US": RegionalProviders(streaming=_providers("Hulu"))})
    watchmode = StubWatchmode([_source("Hulu", "sub", url="https://hulu.com/x")])

    availability = await _reconciler(tmdb, watchmode).reconcile(REF, None, "The Matrix")

    assert watchmode.calls == []
    assert availability.streaming[0].deep_link is None
