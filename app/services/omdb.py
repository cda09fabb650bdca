"""Client for the OMDb API, which supplies IMDb, Metacritic and RT ratings."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..models import RatingSet
from ..utils import clean_text

logger = logging.getLogger(__name__)

ROTTEN_TOMATOES_SOURCE = "Rotten Tomatoes"


class OMDbClient:
    """Ratings lookup that never raises; failures yield empty ratings."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def get_ratings(self, imdb_id: str) -> RatingSet:
        if not self._settings.omdb_api_key:
            logger.info("OMDB_API_KEY is not set; skipping ratings for %s", imdb_id)
            return RatingSet.empty()

        params = {"i": imdb_id, "apikey": self._settings.omdb_api_key}
        try:
            response = await self._client.get("/", params=params)
        except httpx.HTTPError as exc:
            logger.warning("OMDb request for %s failed: %s", imdb_id, exc)
            return RatingSet.empty()

        if response.status_code >= 400:
            logger.warning(
                "OMDb lookup for %s failed (%s): %s",
                imdb_id,
                response.status_code,
                response.text,
            )
            return RatingSet.empty()

        try:
            data = response.json()
        except ValueError:
            logger.warning("OMDb returned invalid JSON for %s", imdb_id)
            return RatingSet.empty()
        if not isinstance(data, dict):
            return RatingSet.empty()
        if data.get("Response") == "False":
            logger.info("OMDb has no record for %s: %s", imdb_id, data.get("Error"))
            return RatingSet.empty()

        return self._parse_ratings(data)

    @staticmethod
    def _parse_ratings(data: dict[str, Any]) -> RatingSet:
        rotten_tomatoes: str | None = None
        for rating in data.get("Ratings") or []:
            if not isinstance(rating, dict):
                continue
            if rating.get("Source") != ROTTEN_TOMATOES_SOURCE:
                continue
            value = clean_text(rating.get("Value"))
            if value:
                rotten_tomatoes = value.replace("%", "").strip() or None
            break

        return RatingSet(
            imdb=clean_text(data.get("imdbRating")),
            metacritic=clean_text(data.get("Metascore")),
            rotten_tomatoes=rotten_tomatoes,
        )
