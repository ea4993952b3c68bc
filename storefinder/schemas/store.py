"""Schemas for stores, users, reviews and discovery results."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, SerializationInfo, field_serializer, field_validator

# Rendered when a store has no uploaded photo.
DEFAULT_PHOTO = "store.png"

# Serialization context for writes (e.g. cache payloads): keep photo as stored.
RAW_PHOTO = {"raw_photo": True}


def _clean_tags(value: object) -> list[str]:
    """Strip, drop blanks and de-duplicate tags while keeping first-seen order."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    seen: dict[str, None] = {}
    for tag in value:  # type: ignore[union-attr]
        tag = str(tag).strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def _render_photo(photo: str | None, info: SerializationInfo) -> str | None:
    if info.mode_is_json() and not (info.context or {}).get("raw_photo"):
        return photo or DEFAULT_PHOTO
    return photo


class GeoPoint(BaseModel):
    """GeoJSON-style point. Coordinates are [longitude, latitude]."""

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]
    address: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _force_point(cls, v: object) -> str:
        return "Point"

    @field_validator("coordinates")
    @classmethod
    def _check_range(cls, v: tuple[float, float]) -> tuple[float, float]:
        lng, lat = v
        if not -180.0 <= lng <= 180.0:
            raise ValueError(f"longitude out of range: {lng}")
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"latitude out of range: {lat}")
        return v

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]


class Store(BaseModel):
    """A published store listing."""

    id: UUID
    name: str = Field(min_length=1)
    slug: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    location: GeoPoint | None = None
    photo: str | None = None
    author_id: UUID = Field(alias="authorId")
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True}

    @field_serializer("photo")
    def _serialize_photo(self, photo: str | None, info: SerializationInfo) -> str | None:
        return _render_photo(photo, info)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: object) -> list[str]:
        return _clean_tags(v)


class ScoredStore(Store):
    """Store returned by text search with its relevance score."""

    score: float


class StoreSummary(BaseModel):
    """Reduced projection returned by geo search."""

    slug: str
    name: str
    description: str = ""
    location: GeoPoint | None = None
    photo: str | None = None

    @field_serializer("photo")
    def _serialize_photo(self, photo: str | None, info: SerializationInfo) -> str | None:
        return _render_photo(photo, info)


class TagCount(BaseModel):
    tag: str
    count: int = Field(ge=0)


class RatedStore(BaseModel):
    """Store with its aggregated review rating."""

    store: Store
    average_rating: float = Field(alias="averageRating")
    review_count: int = Field(alias="reviewCount", ge=0)

    model_config = {"populate_by_name": True}


class User(BaseModel):
    id: UUID
    hearts: list[UUID] = Field(default_factory=list)


class Review(BaseModel):
    id: UUID
    store_id: UUID = Field(alias="storeId")
    author_id: UUID = Field(alias="authorId")
    rating: int = Field(ge=1, le=5)
    text: str = ""
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True}


class StoreDetail(BaseModel):
    """A single store with its reviews, as shown on the store page."""

    store: Store
    reviews: list[Review] = Field(default_factory=list)
    average_rating: float | None = Field(alias="averageRating", default=None)

    model_config = {"populate_by_name": True}


# ============================================================
# Input payloads
# ============================================================


class StoreCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    location: GeoPoint | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: object) -> list[str]:
        return _clean_tags(v)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class StoreUpdate(BaseModel):
    """Partial update; only fields that were explicitly set are merged."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    tags: list[str] | None = None
    location: GeoPoint | None = None
    photo: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_optional_tags(cls, v: object) -> list[str] | None:
        return None if v is None else _clean_tags(v)


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    text: str = ""


# ============================================================
# Discovery results
# ============================================================


class StorePage(BaseModel):
    stores: list[Store]
    page: int = Field(ge=1)
    pages: int = Field(ge=0)
    count: int = Field(ge=0)


class PageRedirect(BaseModel):
    """Returned instead of an empty page when the requested page is past the end."""

    page: int = Field(ge=1)
    message: str


class TagListing(BaseModel):
    tag: str | None = None
    tags: list[TagCount]
    stores: list[Store]
