"""Orchestrate upstream lookups into a single title response."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from ..models import (
    AggregatedTitle,
    AIOverview,
    AvailabilitySet,
    RatingSet,
    TitleRef,
)
from .omdb import OMDbClient
from .overview import OverviewGenerator
from .reconciliation import ProviderReconciler
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TitleAggregator:
    """Compose metadata, ratings and availability for one title.

    Only the canonical metadata lookup may fail the request; ratings and
    availability each fall back to an empty value on error or timeout.
    """

    def __init__(
        self,
        tmdb: TMDBClient,
        omdb: OMDbClient,
        reconciler: ProviderReconciler,
        overview_generator: OverviewGenerator,
        *,
        optional_timeout: float = 8.0,
    ):
        self._tmdb = tmdb
        self._omdb = omdb
        self._reconciler = reconciler
        self._overview_generator = overview_generator
        self._optional_timeout = optional_timeout

    async def aggregate(self, ref: TitleRef) -> AggregatedTitle:
        metadata = await self._tmdb.get_metadata(ref)
        imdb_id = metadata.imdb_id

        ratings, availability = await asyncio.gather(
            self._bounded(
                self._fetch_ratings(imdb_id),
                fallback=RatingSet.empty(),
                label=f"ratings for {ref.path}",
            ),
            self._bounded(
                self._reconciler.reconcile(ref, imdb_id, metadata.title),
                fallback=AvailabilitySet(),
                label=f"availability for {ref.path}",
            ),
        )
        return AggregatedTitle.assemble(metadata, ratings, availability)

    async def generate_overview(self, ref: TitleRef) -> AIOverview | None:
        """Return an AI overview for ``ref``; metadata errors propagate."""

        metadata = await self._tmdb.get_metadata(ref)
        return await self._overview_generator.generate(metadata)

    async def _fetch_ratings(self, imdb_id: str | None) -> RatingSet:
        if not imdb_id:
            return RatingSet.empty()
        return await self._omdb.get_ratings(imdb_id)

    async def _bounded(self, call: Awaitable[T], *, fallback: T, label: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._optional_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out after %.1fs fetching %s", self._optional_timeout, label
            )
        except Exception:
            logger.exception("Unexpected error fetching %s", label)
        return fallback
