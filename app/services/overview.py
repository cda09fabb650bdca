"""Spoiler-free AI overviews generated from canonical metadata."""

from __future__ import annotations

import logging
import re

from ..errors import MissingCredentialError, UpstreamError
from ..models import MAX_SIMILAR_TITLES, AIOverview, CanonicalMetadata
from .openai import OpenAIClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that provides concise, spoiler-free overviews "
    "of movies and TV shows. Never include spoilers and only use information "
    "provided in the context."
)

OVERVIEW_RE = re.compile(r"OVERVIEW:\s*(.+?)(?=SIMILAR:|\Z)", re.DOTALL)
SIMILAR_RE = re.compile(r"SIMILAR:\s*(.+)\Z", re.DOTALL)

MAX_KEYWORDS = 5


def build_overview_prompt(metadata: CanonicalMetadata) -> str:
    """Return the user prompt describing ``metadata``."""

    if metadata.runtime:
        runtime_text = f"{metadata.runtime} minutes"
    elif metadata.type == "tv":
        runtime_text = "TV series"
    else:
        runtime_text = ""
    keywords = ", ".join(metadata.keywords[:MAX_KEYWORDS])

    lines = [
        "You are a helpful assistant that provides concise, spoiler-free overviews of movies and TV shows.",
        "",
        f"Title: {metadata.title}",
        f"Type: {'Movie' if metadata.type == 'movie' else 'TV Show'}",
        f"Year: {metadata.year or ''}",
        f"Runtime: {runtime_text}",
        f"Genres: {', '.join(metadata.genres)}",
    ]
    if keywords:
        lines.append(f"Keywords: {keywords}")
    lines.extend(
        [
            "",
            "Original Overview:",
            metadata.overview,
            "",
            "Provide a 2-4 sentence overview that:",
            "1. Is engaging and captures the essence of the title",
            "2. Contains NO spoilers",
            "3. Only uses information from the provided context (do not invent facts)",
            "4. Is written in a natural, conversational tone",
            "5. Is approximately 80-120 words",
            "",
            "Then, suggest 3 similar titles that fans of this would enjoy, separated by commas.",
            "",
            "Format your response as:",
            "OVERVIEW: [your overview text]",
            "SIMILAR: [title1, title2, title3]",
        ]
    )
    return "\n".join(lines)


def parse_overview_response(content: str, fallback: str = "") -> AIOverview:
    """Split a labelled model response into overview text and similar titles.

    Missing labels degrade gracefully: without ``SIMILAR:`` the whole text
    is the overview and no similar titles are returned.
    """

    text = content.strip()
    overview_match = OVERVIEW_RE.search(text)
    if overview_match:
        overview_text = overview_match.group(1).strip()
    else:
        overview_text = text.split("SIMILAR:", 1)[0].strip()
    if not overview_text:
        overview_text = fallback.strip()

    similar_titles: list[str] = []
    similar_match = SIMILAR_RE.search(text)
    if similar_match:
        raw = similar_match.group(1).strip()
        if raw.startswith("[") and raw.endswith("]"):
            raw = raw[1:-1]
        similar_titles = [
            title for title in (part.strip() for part in raw.split(",")) if title
        ][:MAX_SIMILAR_TITLES]

    return AIOverview(overview_text=overview_text, similar_titles=similar_titles)


class OverviewGenerator:
    """Produce an :class:`AIOverview`, or ``None`` when generation fails."""

    def __init__(self, client: OpenAIClient):
        self._client = client

    async def generate(self, metadata: CanonicalMetadata) -> AIOverview | None:
        prompt = build_overview_prompt(metadata)
        try:
            content = await self._client.complete(SYSTEM_PROMPT, prompt)
        except MissingCredentialError as exc:
            logger.error("%s", exc)
            return None
        except UpstreamError as exc:
            logger.warning(
                "AI overview generation failed for %s %s: %s",
                metadata.type,
                metadata.id,
                exc,
            )
            return None
        return parse_overview_response(content, fallback=metadata.overview)
