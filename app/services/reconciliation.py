"""Merge TMDB watch providers with Watchmode sources into one availability set.

TMDB decides which providers are shown for the home region; Watchmode only
contributes prices and deep links for providers TMDB already lists.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import quote

from ..errors import MissingCredentialError, UpstreamError
from ..models import AvailabilitySet, ProviderOffer, RawOffer, TitleRef
from ..provider_catalog import (
    APPLE_TV_KEY,
    SOURCE_TYPE_OFFERS,
    OfferType,
    ProviderRules,
    normalize_provider_name,
)
from .tmdb import RegionalProviders, TMDBClient, WatchProvider
from .watchmode import WatchmodeClient

logger = logging.getLogger(__name__)

OFFER_TYPES: tuple[OfferType, ...] = ("streaming", "rent", "buy")
MIN_FUZZY_KEY_LENGTH = 4


@dataclass(slots=True)
class PricedSource:
    """Watchmode data retained for a provider/offer-type slot."""

    price: str | None
    deep_link: str | None
    subscription: bool


PricingIndex = dict[OfferType, dict[str, PricedSource]]


class ProviderReconciler:
    """Build the US availability set for a title from both catalogs."""

    def __init__(
        self,
        tmdb: TMDBClient,
        watchmode: WatchmodeClient,
        rules: ProviderRules,
    ):
        self._tmdb = tmdb
        self._watchmode = watchmode
        self._rules = rules

    async def reconcile(
        self, ref: TitleRef, imdb_id: str | None, title: str
    ) -> AvailabilitySet:
        """Return the de-duplicated availability set; never raises."""

        presence_task = self._fetch_presence(ref)
        if imdb_id:
            presence, pricing = await asyncio.gather(
                presence_task, self._fetch_pricing(imdb_id)
            )
        else:
            presence = await presence_task
            pricing = []

        if presence is None:
            return AvailabilitySet()
        return merge_availability(presence, pricing, self._rules, title=title)

    async def _fetch_presence(self, ref: TitleRef) -> RegionalProviders | None:
        try:
            regions = await self._tmdb.get_watch_providers(ref)
        except (UpstreamError, MissingCredentialError) as exc:
            logger.warning("Watch providers unavailable for %s: %s", ref.path, exc)
            return None
        region = regions.get(self._rules.region)
        if region is None:
            logger.info("No %s watch providers for %s", self._rules.region, ref.path)
        return region

    async def _fetch_pricing(self, imdb_id: str) -> list[RawOffer]:
        try:
            return await self._watchmode.find_by_external_id(imdb_id)
        except (UpstreamError, MissingCredentialError) as exc:
            logger.warning("Watchmode sources unavailable for %s: %s", imdb_id, exc)
            return []


def merge_availability(
    presence: RegionalProviders,
    pricing: list[RawOffer],
    rules: ProviderRules,
    *,
    title: str = "",
) -> AvailabilitySet:
    """Combine presence and pricing data according to ``rules``."""

    index = build_pricing_index(pricing, rules)
    availability = AvailabilitySet()

    for offer_type in OFFER_TYPES:
        seen: set[str] = set()
        offers = availability.offers(offer_type)
        for provider in getattr(presence, offer_type):
            key = normalize_provider_name(provider.name)
            if not key or key in seen:
                continue
            if not rules.is_allowed(provider.name):
                logger.debug("Dropping provider %s (%s)", provider.name, offer_type)
                continue
            seen.add(key)
            offers.append(
                _build_offer(provider, key, offer_type, index, rules, title)
            )

    if rules.suppress_rent_buy_when_streaming and availability.streaming:
        availability.rent = []
        availability.buy = []
    return availability


def build_pricing_index(pricing: list[RawOffer], rules: ProviderRules) -> PricingIndex:
    """Index home-region sources by offer type and normalised provider name.

    A provider listed as both subscription and transactional keeps the
    subscription record for the streaming slot.
    """

    index: PricingIndex = {offer_type: {} for offer_type in OFFER_TYPES}
    for source in pricing:
        if not rules.is_home_region(source.region):
            continue
        offer_type = SOURCE_TYPE_OFFERS.get(source.kind)
        if offer_type is None:
            continue
        key = normalize_provider_name(source.name)
        if not key:
            continue
        candidate = PricedSource(
            price=source.price,
            deep_link=source.web_url,
            subscription=source.kind == "sub",
        )
        slot = index[offer_type]
        existing = slot.get(key)
        if existing is None:
            slot[key] = candidate
        elif candidate.subscription and not existing.subscription:
            slot[key] = candidate
        elif existing.deep_link is None and candidate.deep_link:
            existing.deep_link = candidate.deep_link
    return index


def match_priced_source(
    key: str, candidates: dict[str, PricedSource]
) -> PricedSource | None:
    """Find the pricing record for ``key`` using exact, then fuzzy rules."""

    if key in candidates:
        return candidates[key]
    if key == APPLE_TV_KEY:
        for candidate_key, source in candidates.items():
            if candidate_key.startswith("apple"):
                return source
        return None
    if len(key) < MIN_FUZZY_KEY_LENGTH:
        return None
    for candidate_key, source in candidates.items():
        if len(candidate_key) < MIN_FUZZY_KEY_LENGTH:
            continue
        if key in candidate_key or candidate_key in key:
            return source
    return None


def _build_offer(
    provider: WatchProvider,
    key: str,
    offer_type: OfferType,
    index: PricingIndex,
    rules: ProviderRules,
    title: str,
) -> ProviderOffer:
    priced = match_priced_source(key, index[offer_type])
    price = priced.price if priced else None
    deep_link = priced.deep_link if priced else None

    if deep_link is None and offer_type == "streaming" and title:
        template = rules.fallback_deep_link(key)
        if template:
            deep_link = template.format(query=quote(title, safe=""))

    return ProviderOffer(
        provider=provider.name,
        type=offer_type,
        price=price,
        deep_link=deep_link,
        logo_url=provider.logo_url,
    )
