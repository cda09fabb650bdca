"""Client for the Watchmode API, the pricing and deep-link source."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..errors import MissingCredentialError, UpstreamError
from ..models import RawOffer

logger = logging.getLogger(__name__)

SOURCE_TYPES = "sub,rent,buy,free,tve"


class WatchmodeClient:
    """Resolves a title's purchasable and streamable sources by IMDb id."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def find_by_external_id(self, imdb_id: str) -> list[RawOffer]:
        """Return every source Watchmode lists for ``imdb_id``.

        The IMDb id is first resolved to a Watchmode title id. When that
        lookup yields nothing, or the resolved title lists no sources, the
        IMDb id is used directly because the sources endpoint accepts it too.
        """

        search = await self._get(
            "/search/",
            params={"search_field": "imdb_id", "search_value": imdb_id},
        )
        title_results = search.get("title_results") if isinstance(search, dict) else None
        title_id: str = imdb_id
        if isinstance(title_results, list) and title_results:
            first = title_results[0]
            if isinstance(first, dict) and first.get("id") is not None:
                title_id = str(first["id"])
        else:
            logger.debug("Watchmode search found no title for %s", imdb_id)

        offers = await self._list_sources(title_id)
        if not offers and title_id != imdb_id:
            logger.debug(
                "Watchmode title %s has no sources; retrying with %s", title_id, imdb_id
            )
            offers = await self._list_sources(imdb_id)
        return offers

    async def _list_sources(self, title_id: str) -> list[RawOffer]:
        sources = await self._get(
            f"/title/{title_id}/sources/", params={"source_types": SOURCE_TYPES}
        )
        if not isinstance(sources, list):
            return []
        return [offer for offer in map(self._parse_source, sources) if offer]

    async def _get(self, endpoint: str, *, params: dict[str, Any]) -> Any:
        if not self._settings.watchmode_api_key:
            raise MissingCredentialError("Watchmode", "WATCHMODE_API_KEY")
        request_params = {**params, "apiKey": self._settings.watchmode_api_key}
        try:
            response = await self._client.get(endpoint, params=request_params)
        except httpx.HTTPError as exc:
            raise UpstreamError(
                "Watchmode", f"request to {endpoint} failed: {exc}"
            ) from exc
        if response.status_code == 404:
            return []
        if response.status_code >= 400:
            raise UpstreamError(
                "Watchmode",
                f"{endpoint} returned HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("Watchmode", f"{endpoint} returned invalid JSON") from exc

    @staticmethod
    def _parse_source(source: Any) -> RawOffer | None:
        if not isinstance(source, dict):
            return None
        name = str(source.get("name") or "").strip()
        kind = str(source.get("type") or "").strip().lower()
        if not name or not kind:
            return None
        price = source.get("price")
        return RawOffer(
            name=name,
            kind=kind,
            price=_format_price(price),
            web_url=source.get("web_url") or None,
            region=source.get("region") or None,
            format=source.get("format") or None,
        )


def _format_price(price: Any) -> str | None:
    if price is None or price == "":
        return None
    if isinstance(price, (int, float)):
        return f"${price:.2f}"
    return str(price).strip() or None
