"""Entry point for the FastAPI-powered title lookup service."""

from __future__ import annotations

import logging
import re
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import ValidationError

from .config import Settings, settings
from .errors import MissingCredentialError, TitleNotFoundError, UpstreamError
from .models import TitleRef
from .provider_catalog import ProviderRules
from .services.aggregator import TitleAggregator
from .services.omdb import OMDbClient
from .services.openai import OpenAIClient
from .services.overview import OverviewGenerator
from .services.reconciliation import ProviderReconciler
from .services.tmdb import TMDBClient
from .services.watchmode import WatchmodeClient
from .web import render_index_page

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
ASCII_DIGITS_RE = re.compile(r"[0-9]+")

SEARCH_CACHE_CONTROL = "public, s-maxage=600, stale-while-revalidate=900"
TITLE_CACHE_CONTROL = "public, s-maxage=86400, stale-while-revalidate=43200"
OVERVIEW_CACHE_CONTROL = "public, s-maxage=604800, stale-while-revalidate=86400"

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    timeout = httpx.Timeout(settings.http_timeout_seconds, connect=5.0)
    tmdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(settings.tmdb_api_url), timeout=timeout)
    )
    omdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(settings.omdb_api_url), timeout=timeout)
    )
    watchmode_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(settings.watchmode_api_url), timeout=timeout)
    )
    openai_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.openai_api_url),
            timeout=httpx.Timeout(30.0, connect=5.0),
        )
    )

    tmdb = TMDBClient(settings, tmdb_http)
    fastapi_app.state.tmdb = tmdb
    fastapi_app.state.aggregator = build_aggregator(
        settings,
        tmdb=tmdb,
        omdb=OMDbClient(settings, omdb_http),
        watchmode=WatchmodeClient(settings, watchmode_http),
        openai=OpenAIClient(settings, openai_http),
    )
    if not settings.tmdb_api_key:
        logger.warning("TMDB_API_KEY is not set; every title request will fail")

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def build_aggregator(
    app_settings: Settings,
    *,
    tmdb: TMDBClient,
    omdb: OMDbClient,
    watchmode: WatchmodeClient,
    openai: OpenAIClient,
) -> TitleAggregator:
    reconciler = ProviderReconciler(
        tmdb, watchmode, ProviderRules.from_settings(app_settings)
    )
    return TitleAggregator(
        tmdb,
        omdb,
        reconciler,
        OverviewGenerator(openai),
        optional_timeout=app_settings.optional_call_timeout_seconds,
    )


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Movie and TV lookups with ratings and streaming availability",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_aggregator(app: FastAPI) -> TitleAggregator:
    aggregator = getattr(app.state, "aggregator", None)
    if aggregator is None:
        raise RuntimeError("Title aggregator not initialised")
    return aggregator


def get_tmdb(app: FastAPI) -> TMDBClient:
    client = getattr(app.state, "tmdb", None)
    if client is None:
        raise RuntimeError("TMDB client not initialised")
    return client


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def parse_title_ref(media_type: object, raw_id: object) -> TitleRef | JSONResponse:
    """Validate a (type, id) pair, returning a 400 response when invalid."""

    if media_type not in {"movie", "tv"}:
        return error_response("Invalid type. Must be 'movie' or 'tv'", 400)
    if raw_id is None or raw_id == "":
        return error_response("ID is required", 400)
    if isinstance(raw_id, bool):
        return error_response("Invalid ID", 400)
    if isinstance(raw_id, float):
        if not raw_id.is_integer():
            return error_response("Invalid ID", 400)
        raw_id = int(raw_id)
    text = str(raw_id).strip()
    if not ASCII_DIGITS_RE.fullmatch(text):
        return error_response("Invalid ID", 400)
    catalog_id = int(text)
    if catalog_id <= 0:
        return error_response("Invalid ID", 400)
    try:
        return TitleRef(media_type=media_type, catalog_id=catalog_id)
    except ValidationError:
        return error_response("Invalid ID", 400)


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/", response_class=HTMLResponse)
    async def index_page() -> HTMLResponse:
        return HTMLResponse(
            render_index_page(settings, min_query_length=MIN_QUERY_LENGTH)
        )

    @fastapi_app.get("/search")
    async def search(q: str | None = None) -> JSONResponse:
        query = (q or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return error_response(
                f"Query must be at least {MIN_QUERY_LENGTH} characters", 400
            )
        tmdb = get_tmdb(fastapi_app)
        try:
            hits = await tmdb.search(query)
        except MissingCredentialError as exc:
            logger.error("%s", exc)
            return error_response(str(exc), 500)
        except UpstreamError:
            logger.exception("Search failed for %r", query)
            return error_response("Failed to search titles", 500)
        return JSONResponse(
            [hit.to_payload() for hit in hits],
            headers={"Cache-Control": SEARCH_CACHE_CONTROL},
        )

    @fastapi_app.get("/title")
    async def title_detail(
        media_type: str | None = Query(default=None, alias="type"),
        raw_id: str | None = Query(default=None, alias="id"),
    ) -> JSONResponse:
        ref = parse_title_ref(media_type, raw_id)
        if isinstance(ref, JSONResponse):
            return ref
        aggregator = get_aggregator(fastapi_app)
        try:
            detail = await aggregator.aggregate(ref)
        except TitleNotFoundError:
            return error_response("Title not found", 404)
        except MissingCredentialError as exc:
            logger.error("%s", exc)
            return error_response(str(exc), 500)
        except UpstreamError:
            logger.exception("Title lookup failed for %s", ref.path)
            return error_response("Failed to fetch title details", 500)
        return JSONResponse(
            detail.to_payload(), headers={"Cache-Control": TITLE_CACHE_CONTROL}
        )

    @fastapi_app.post("/ai-overview")
    async def ai_overview(request: Request) -> JSONResponse:
        try:
            payload: Any = await request.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            return error_response("Invalid payload", 400)

        media_type = payload.get("type")
        raw_id = payload.get("id")
        if isinstance(raw_id, str):
            return error_response("Invalid ID", 400)
        ref = parse_title_ref(media_type, raw_id)
        if isinstance(ref, JSONResponse):
            return ref

        aggregator = get_aggregator(fastapi_app)
        try:
            overview = await aggregator.generate_overview(ref)
        except TitleNotFoundError:
            return error_response("Title not found", 404)
        except MissingCredentialError as exc:
            logger.error("%s", exc)
            return error_response(str(exc), 500)
        except UpstreamError:
            logger.exception("AI overview context lookup failed for %s", ref.path)
            return error_response("Failed to generate AI overview", 500)
        if overview is None:
            return error_response("Failed to generate AI overview", 500)
        return JSONResponse(
            overview.to_payload(), headers={"Cache-Control": OVERVIEW_CACHE_CONTROL}
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
