"""Client for The Movie Database (TMDB), the canonical metadata source."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import Settings
from ..errors import MissingCredentialError, TitleNotFoundError, UpstreamError
from ..models import (
    MAX_CAST_MEMBERS,
    CanonicalMetadata,
    CastMember,
    MediaType,
    SearchHit,
    TitleRef,
)
from ..utils import build_image_url, format_runtime, format_seasons

logger = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 10


@dataclass(slots=True)
class WatchProvider:
    """A provider listed by TMDB for one region."""

    provider_id: int | None
    name: str
    logo_url: str | None = None


@dataclass(slots=True)
class RegionalProviders:
    """TMDB watch providers for a single region grouped by monetisation."""

    streaming: list[WatchProvider] = field(default_factory=list)
    rent: list[WatchProvider] = field(default_factory=list)
    buy: list[WatchProvider] = field(default_factory=list)


class TMDBClient:
    """Client responsible for title metadata, search and watch providers."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def get_metadata(self, ref: TitleRef) -> CanonicalMetadata:
        """Return canonical metadata for ``ref``.

        Raises :class:`TitleNotFoundError` for unknown ids and
        :class:`UpstreamError` for any other failure.
        """

        payload = await self._get(
            ref.path,
            params={"append_to_response": "credits,videos,external_ids,keywords"},
        )
        if not isinstance(payload, dict):
            raise UpstreamError("TMDB", f"unexpected metadata payload for {ref.path}")
        return self._parse_metadata(ref.media_type, payload)

    async def search(self, query: str) -> list[SearchHit]:
        """Search movies and series in parallel and rank them by relevance."""

        normalized_query = query.strip()
        params = {"query": normalized_query, "include_adult": "false"}
        movie_data, tv_data = await asyncio.gather(
            self._get("/search/movie", params=params),
            self._get("/search/tv", params=params),
        )

        hits: list[SearchHit] = []
        for media_type, data in (("movie", movie_data), ("tv", tv_data)):
            results = data.get("results") if isinstance(data, dict) else None
            for result in results or []:
                hit = self._parse_search_result(media_type, result)
                if hit is not None:
                    hits.append(hit)

        return rank_search_hits(hits, normalized_query)[:SEARCH_RESULT_LIMIT]

    async def get_watch_providers(
        self, ref: TitleRef
    ) -> dict[str, RegionalProviders]:
        """Return watch providers keyed by ISO region code."""

        payload = await self._get(f"{ref.path}/watch/providers")
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, dict):
            return {}

        regions: dict[str, RegionalProviders] = {}
        for region, entry in results.items():
            if not isinstance(entry, dict):
                continue
            regions[str(region).upper()] = RegionalProviders(
                streaming=self._parse_providers(entry.get("flatrate")),
                rent=self._parse_providers(entry.get("rent")),
                buy=self._parse_providers(entry.get("buy")),
            )
        return regions

    async def _get(self, endpoint: str, *, params: dict[str, Any] | None = None) -> Any:
        if not self._settings.tmdb_api_key:
            raise MissingCredentialError("TMDB", "TMDB_API_KEY")
        request_params = {**(params or {}), "api_key": self._settings.tmdb_api_key}
        try:
            response = await self._client.get(endpoint, params=request_params)
        except httpx.HTTPError as exc:
            raise UpstreamError("TMDB", f"request to {endpoint} failed: {exc}") from exc

        if response.status_code == 404:
            raise TitleNotFoundError(
                "TMDB", f"{endpoint} was not found", status_code=404
            )
        if response.status_code >= 400:
            logger.warning(
                "TMDB request %s failed (%s): %s",
                endpoint,
                response.status_code,
                response.text,
            )
            raise UpstreamError(
                "TMDB",
                f"{endpoint} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("TMDB", f"{endpoint} returned invalid JSON") from exc

    @staticmethod
    def _parse_metadata(
        media_type: MediaType, payload: dict[str, Any]
    ) -> CanonicalMetadata:
        credits = payload.get("credits") or {}
        cast = [
            CastMember(
                name=str(member.get("name") or ""),
                character=str(member.get("character") or ""),
                profile_url=build_image_url(member.get("profile_path"), "w185"),
            )
            for member in (credits.get("cast") or [])[:MAX_CAST_MEMBERS]
            if isinstance(member, dict)
        ]

        if media_type == "movie":
            title = payload.get("title") or payload.get("original_title") or ""
            release_date = payload.get("release_date") or None
            runtime = payload.get("runtime") or None
            seasons = None
            runtime_label = format_runtime(runtime)
            directors = [
                str(person.get("name"))
                for person in credits.get("crew") or []
                if isinstance(person, dict)
                and person.get("job") == "Director"
                and person.get("name")
            ]
            creators: list[str] = []
        else:
            title = payload.get("name") or payload.get("original_name") or ""
            release_date = payload.get("first_air_date") or None
            episode_runtimes = payload.get("episode_run_time") or []
            runtime = episode_runtimes[0] if episode_runtimes else None
            seasons = payload.get("number_of_seasons")
            runtime_label = format_seasons(seasons)
            directors = []
            creators = [
                str(creator.get("name"))
                for creator in payload.get("created_by") or []
                if isinstance(creator, dict) and creator.get("name")
            ]

        external_ids = payload.get("external_ids") or {}
        imdb_id = external_ids.get("imdb_id") or payload.get("imdb_id") or None

        return CanonicalMetadata(
            id=int(payload.get("id") or 0),
            type=media_type,
            title=str(title),
            overview=str(payload.get("overview") or ""),
            release_date=release_date,
            poster_url=build_image_url(payload.get("poster_path"), "w500"),
            backdrop_url=build_image_url(payload.get("backdrop_path"), "w1280"),
            genres=[
                str(genre.get("name"))
                for genre in payload.get("genres") or []
                if isinstance(genre, dict) and genre.get("name")
            ],
            runtime=runtime,
            seasons=seasons,
            runtime_label=runtime_label,
            vote_average=float(payload.get("vote_average") or 0.0),
            imdb_id=imdb_id,
            cast=cast,
            directors=directors,
            creators=creators,
            trailer_key=_select_trailer(payload.get("videos")),
            keywords=_extract_keywords(payload.get("keywords")),
        )

    @staticmethod
    def _parse_search_result(
        media_type: MediaType, result: Any
    ) -> SearchHit | None:
        if not isinstance(result, dict) or result.get("id") is None:
            return None
        if media_type == "movie":
            title = result.get("title")
            release_date = result.get("release_date")
        else:
            title = result.get("name")
            release_date = result.get("first_air_date")
        return SearchHit(
            id=int(result["id"]),
            type=media_type,
            title=title or "Unknown",
            release_date=release_date or None,
            poster_url=build_image_url(result.get("poster_path"), "w185"),
        )

    @staticmethod
    def _parse_providers(entries: Any) -> list[WatchProvider]:
        providers: list[WatchProvider] = []
        for entry in entries or []:
            if not isinstance(entry, dict) or not entry.get("provider_name"):
                continue
            providers.append(
                WatchProvider(
                    provider_id=entry.get("provider_id"),
                    name=str(entry["provider_name"]),
                    logo_url=build_image_url(entry.get("logo_path"), "w92"),
                )
            )
        return providers


def rank_search_hits(hits: list[SearchHit], query: str) -> list[SearchHit]:
    """Order hits by prefix match, then substring match, then catalog order."""

    needle = query.strip().lower()

    def _rank(hit: SearchHit) -> int:
        title = hit.title.lower()
        if title.startswith(needle):
            return 0
        if needle in title:
            return 1
        return 2

    return sorted(hits, key=_rank)


def _select_trailer(videos: Any) -> str | None:
    if not isinstance(videos, dict):
        return None
    for video in videos.get("results") or []:
        if not isinstance(video, dict):
            continue
        if video.get("type") == "Trailer" and video.get("site") == "YouTube":
            return video.get("key") or None
    return None


def _extract_keywords(keywords: Any) -> list[str]:
    # Movies list keywords under "keywords", series under "results".
    if not isinstance(keywords, dict):
        return []
    entries = keywords.get("keywords") or keywords.get("results") or []
    return [
        str(entry.get("name"))
        for entry in entries
        if isinstance(entry, dict) and entry.get("name")
    ]
