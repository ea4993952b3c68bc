"""Builders for test data."""

from datetime import datetime, timedelta, timezone
import io
from uuid import UUID, uuid4

from PIL import Image

from storefinder.schemas import GeoPoint, Review, Store
from storefinder.services.stores import slugify

# Hamilton, ON city hall; sample coordinates are offsets from here.
ORIGIN = (-79.8711, 43.2557)

_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_store(
    name: str,
    *,
    author_id: UUID | None = None,
    tags: list[str] | None = None,
    coordinates: tuple[float, float] | None = None,
    description: str = "",
    minutes: int = 0,
) -> Store:
    """Build a Store; `minutes` offsets created_at so ordering is deterministic."""
    return Store(
        id=uuid4(),
        name=name,
        slug=slugify(name),
        description=description,
        tags=tags or [],
        location=GeoPoint(coordinates=coordinates) if coordinates else None,
        author_id=author_id or uuid4(),
        created_at=_BASE_TIME + timedelta(minutes=minutes),
    )


def make_review(store_id: UUID, rating: int, *, minutes: int = 0) -> Review:
    return Review(
        id=uuid4(),
        store_id=store_id,
        author_id=uuid4(),
        rating=rating,
        created_at=_BASE_TIME + timedelta(minutes=minutes),
    )


def image_bytes(width: int, height: int, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height)).save(buf, format=fmt)
    return buf.getvalue()
