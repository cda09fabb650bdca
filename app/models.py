"""Pydantic models describing title payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .provider_catalog import OfferType

MediaType = Literal["movie", "tv"]

MAX_CAST_MEMBERS = 10
MAX_SIMILAR_TITLES = 3


class CamelModel(BaseModel):
    """Base model serialising field names in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)


class TitleRef(CamelModel):
    """Stable identity of a title in the canonical catalog."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    media_type: MediaType = Field(
        validation_alias=AliasChoices("media_type", "mediaType", "type")
    )
    catalog_id: int = Field(
        validation_alias=AliasChoices("catalog_id", "catalogId", "id")
    )

    @property
    def path(self) -> str:
        return f"/{self.media_type}/{self.catalog_id}"


class CastMember(CamelModel):
    name: str
    character: str = ""
    profile_url: str | None = None


class CanonicalMetadata(CamelModel):
    """Title facts resolved from the canonical catalog."""

    id: int
    type: MediaType
    title: str
    overview: str = ""
    release_date: str | None = None
    poster_url: str | None = None
    backdrop_url: str | None = None
    genres: list[str] = Field(default_factory=list)
    runtime: int | None = None
    seasons: int | None = None
    runtime_label: str | None = None
    vote_average: float = 0.0
    imdb_id: str | None = None
    cast: list[CastMember] = Field(default_factory=list, max_length=MAX_CAST_MEMBERS)
    directors: list[str] = Field(default_factory=list)
    creators: list[str] = Field(default_factory=list)
    trailer_key: str | None = None
    keywords: list[str] = Field(default_factory=list)

    @property
    def year(self) -> str | None:
        if self.release_date and len(self.release_date) >= 4:
            return self.release_date[:4]
        return None


class RatingSet(CamelModel):
    """Third-party ratings; each value is independently optional."""

    imdb: str | None = None
    metacritic: str | None = None
    rotten_tomatoes: str | None = None

    @classmethod
    def empty(cls) -> "RatingSet":
        return cls()


class ProviderOffer(CamelModel):
    """One provider's way to access a title."""

    provider: str
    type: OfferType
    price: str | None = None
    deep_link: str | None = None
    logo_url: str | None = None


class AvailabilitySet(CamelModel):
    streaming: list[ProviderOffer] = Field(default_factory=list)
    rent: list[ProviderOffer] = Field(default_factory=list)
    buy: list[ProviderOffer] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.streaming or self.rent or self.buy)

    def offers(self, offer_type: OfferType) -> list[ProviderOffer]:
        return getattr(self, offer_type)


class AIOverview(CamelModel):
    overview_text: str
    similar_titles: list[str] = Field(
        default_factory=list, max_length=MAX_SIMILAR_TITLES
    )


class SearchHit(CamelModel):
    id: int
    type: MediaType
    title: str
    release_date: str | None = None
    poster_url: str | None = None


class RawOffer(CamelModel):
    """A source record returned by the pricing catalog."""

    name: str
    kind: str
    price: str | None = None
    web_url: str | None = None
    region: str | None = None
    format: str | None = None


class AggregatedTitle(CamelModel):
    """Response entity of the title endpoint."""

    id: int
    type: MediaType
    title: str
    overview: str
    release_date: str | None = None
    poster_url: str | None = None
    backdrop_url: str | None = None
    genres: list[str] = Field(default_factory=list)
    runtime: int | None = None
    seasons: int | None = None
    runtime_label: str | None = None
    vote_average: float = 0.0
    imdb_id: str | None = None
    imdb_rating: str | None = None
    metascore: str | None = None
    rotten_tomatoes: str | None = None
    directors: list[str] = Field(default_factory=list)
    creators: list[str] = Field(default_factory=list)
    cast: list[CastMember] = Field(default_factory=list)
    trailer_key: str | None = None
    watch_availability: AvailabilitySet = Field(default_factory=AvailabilitySet)
    ai_overview: AIOverview | None = None

    @classmethod
    def assemble(
        cls,
        metadata: CanonicalMetadata,
        ratings: RatingSet,
        availability: AvailabilitySet,
    ) -> "AggregatedTitle":
        fields = metadata.model_dump(exclude={"keywords"})
        return cls(
            **fields,
            imdb_rating=ratings.imdb,
            metascore=ratings.metacritic,
            rotten_tomatoes=ratings.rotten_tomatoes,
            watch_availability=availability,
        )
