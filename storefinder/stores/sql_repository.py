"""PostgreSQL-backed store repository.

Each method opens its own session via `get_session`, so callers may run
several repository calls concurrently (asyncio.gather) without sharing a
session.

Query capabilities are pushed into SQL:
- text relevance: to_tsvector/websearch_to_tsquery (any term) + ts_rank over name
  and description
- radius search: haversine expression on the longitude/latitude columns
- rating aggregate: AVG(reviews.rating) over an inner join (review-less stores drop out)
"""

from collections.abc import Callable, Iterable
from contextlib import AbstractAsyncContextManager
import re
from uuid import UUID

from sqlalchemy import Select, delete, func, literal, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from storefinder.models import ReviewRecord, StoreRecord, UserRecord, user_hearts
from storefinder.schemas import (
    GeoPoint,
    RatedStore,
    Review,
    ScoredStore,
    Store,
    StoreSummary,
    TagCount,
    User,
)
from storefinder.services.query_capability import EARTH_RADIUS_M
from storefinder.stores.postgres import get_session

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

TEXT_SEARCH_CONFIG = "english"

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def _to_store(row: StoreRecord) -> Store:
    location = None
    if row.longitude is not None and row.latitude is not None:
        location = GeoPoint(coordinates=(row.longitude, row.latitude), address=row.address)
    return Store(
        id=row.id,
        name=row.name,
        slug=row.slug,
        description=row.description or "",
        tags=list(row.tags or []),
        location=location,
        photo=row.photo,
        author_id=row.author_id,
        created_at=row.created_at,
    )


def _to_review(row: ReviewRecord) -> Review:
    return Review(
        id=row.id,
        store_id=row.store_id,
        author_id=row.author_id,
        rating=row.rating,
        text=row.text or "",
        created_at=row.created_at,
    )


def _apply(row: StoreRecord, store: Store) -> None:
    """Copy mutable fields from a schema onto an ORM row."""
    row.name = store.name
    row.description = store.description
    row.tags = list(store.tags)
    row.photo = store.photo
    if store.location is not None:
        row.longitude, row.latitude = store.location.coordinates
        row.address = store.location.address
    else:
        row.longitude = row.latitude = row.address = None


def _search_document():
    return func.to_tsvector(
        TEXT_SEARCH_CONFIG,
        func.coalesce(StoreRecord.name, "") + literal(" ") + func.coalesce(StoreRecord.description, ""),
    )


def _distance_m(lng: float, lat: float):
    """Haversine distance (meters) from (lng, lat) to each store's location."""
    dlat = func.radians(StoreRecord.latitude - lat)
    dlng = func.radians(StoreRecord.longitude - lng)
    a = func.power(func.sin(dlat / 2), 2) + (
        func.cos(func.radians(literal(lat)))
        * func.cos(func.radians(StoreRecord.latitude))
        * func.power(func.sin(dlng / 2), 2)
    )
    return 2 * EARTH_RADIUS_M * func.asin(func.least(1.0, func.sqrt(a)))


def any_term_query(query: str) -> str:
    """Rewrite free text as a websearch query matching any of its words.

    Terms are OR-ed: "sushi bar" finds a store that only mentions "bar".
    """
    words = [w for w in _WORD_RE.findall(query.lower()) if w != "or"]
    return " or ".join(words)


def text_search_statement(query: str, limit: int) -> Select | None:
    """Relevance-ranked full-text select, or None when the query has no words."""
    terms = any_term_query(query)
    if not terms:
        return None
    document = _search_document()
    ts_query = func.websearch_to_tsquery(TEXT_SEARCH_CONFIG, terms)
    score = func.ts_rank(document, ts_query).label("score")
    return (
        select(StoreRecord, score)
        .where(document.op("@@")(ts_query))
        .order_by(score.desc(), StoreRecord.id)
        .limit(limit)
    )


class PostgresStoreRepository:
    """`StoreRepository` over async SQLAlchemy."""

    def __init__(self, session_scope: SessionScope = get_session) -> None:
        self._session = session_scope

    # ============================================================
    # Stores: reads
    # ============================================================

    async def get_by_slug(self, slug: str) -> Store | None:
        async with self._session() as session:
            result = await session.execute(select(StoreRecord).where(StoreRecord.slug == slug))
            row = result.scalar_one_or_none()
            return _to_store(row) if row else None

    async def get_by_id(self, store_id: UUID) -> Store | None:
        async with self._session() as session:
            row = await session.get(StoreRecord, store_id)
            return _to_store(row) if row else None

    async def list_stores(self, skip: int, limit: int) -> list[Store]:
        async with self._session() as session:
            result = await session.execute(
                select(StoreRecord)
                .order_by(StoreRecord.created_at.desc(), StoreRecord.id.desc())
                .offset(skip)
                .limit(limit)
            )
            return [_to_store(row) for row in result.scalars().all()]

    async def count_stores(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.count(StoreRecord.id)))
            return result.scalar() or 0

    async def by_tag(self, tag: str | None) -> list[Store]:
        if tag is None:
            condition = func.cardinality(StoreRecord.tags) > 0
        else:
            condition = StoreRecord.tags.any(tag)
        async with self._session() as session:
            result = await session.execute(
                select(StoreRecord).where(condition).order_by(StoreRecord.created_at, StoreRecord.id)
            )
            return [_to_store(row) for row in result.scalars().all()]

    async def distinct_tags(self) -> list[TagCount]:
        unnested = select(
            StoreRecord.id.label("store_id"),
            func.unnest(StoreRecord.tags).label("tag"),
        ).subquery()
        count = func.count(func.distinct(unnested.c.store_id)).label("count")
        query = (
            select(unnested.c.tag, count)
            .group_by(unnested.c.tag)
            .order_by(count.desc(), unnested.c.tag.asc())
        )
        async with self._session() as session:
            result = await session.execute(query)
            return [TagCount(tag=tag, count=n) for tag, n in result.all()]

    async def text_search(self, query: str, limit: int) -> list[ScoredStore]:
        stmt = text_search_statement(query, limit)
        if stmt is None:
            return []
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                ScoredStore(**_to_store(row).model_dump(), score=float(rank))
                for row, rank in result.all()
            ]

    async def near(
        self,
        lng: float,
        lat: float,
        max_distance_m: float,
        limit: int,
    ) -> list[StoreSummary]:
        distance = _distance_m(lng, lat)
        stmt = (
            select(StoreRecord)
            .where(StoreRecord.longitude.is_not(None), StoreRecord.latitude.is_not(None))
            .where(distance <= max_distance_m)
            .order_by(distance, StoreRecord.id)
            .limit(limit)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                StoreSummary.model_validate(
                    _to_store(row).model_dump(include={"slug", "name", "description", "location", "photo"})
                )
                for row in result.scalars().all()
            ]

    async def top_rated(self, limit: int, min_reviews: int = 1) -> list[RatedStore]:
        average = func.avg(ReviewRecord.rating).label("average_rating")
        review_count = func.count(ReviewRecord.id).label("review_count")
        stmt = (
            select(StoreRecord, average, review_count)
            .join(ReviewRecord, ReviewRecord.store_id == StoreRecord.id)
            .group_by(StoreRecord.id)
            .having(func.count(ReviewRecord.id) >= max(min_reviews, 1))
            .order_by(average.desc(), StoreRecord.id)
            .limit(limit)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                RatedStore(store=_to_store(row), average_rating=float(avg), review_count=n)
                for row, avg, n in result.all()
            ]

    async def by_ids(self, store_ids: Iterable[UUID]) -> list[Store]:
        ids = list(set(store_ids))
        if not ids:
            return []
        async with self._session() as session:
            result = await session.execute(
                select(StoreRecord).where(StoreRecord.id.in_(ids)).order_by(StoreRecord.created_at.desc())
            )
            return [_to_store(row) for row in result.scalars().all()]

    async def slugs_like(self, base: str) -> list[str]:
        # Slugs are [a-z0-9-] only, so base needs no regex escaping.
        async with self._session() as session:
            result = await session.execute(
                select(StoreRecord.slug).where(StoreRecord.slug.op("~")(f"^{base}(-[0-9]+)?$"))
            )
            return list(result.scalars().all())

    # ============================================================
    # Stores: writes
    # ============================================================

    async def add_store(self, store: Store) -> Store:
        row = StoreRecord(
            id=store.id,
            slug=store.slug,
            author_id=store.author_id,
            created_at=store.created_at,
        )
        _apply(row, store)
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return _to_store(row)

    async def save_store(self, store: Store) -> Store:
        async with self._session() as session:
            row = await session.get(StoreRecord, store.id)
            if row is None:
                raise KeyError(store.id)
            _apply(row, store)
            await session.flush()
            return _to_store(row)

    # ============================================================
    # Users / hearts
    # ============================================================

    async def get_user(self, user_id: UUID) -> User | None:
        async with self._session() as session:
            user = await session.get(UserRecord, user_id)
            if user is None:
                return None
            result = await session.execute(
                select(user_hearts.c.store_id)
                .where(user_hearts.c.user_id == user_id)
                .order_by(user_hearts.c.created_at)
            )
            return User(id=user_id, hearts=list(result.scalars().all()))

    async def create_user(self, user_id: UUID) -> User:
        async with self._session() as session:
            await session.execute(insert(UserRecord).values(id=user_id).on_conflict_do_nothing())
        return await self.get_user(user_id) or User(id=user_id)

    async def add_heart(self, user_id: UUID, store_id: UUID) -> None:
        async with self._session() as session:
            await session.execute(
                insert(user_hearts).values(user_id=user_id, store_id=store_id).on_conflict_do_nothing()
            )

    async def remove_heart(self, user_id: UUID, store_id: UUID) -> None:
        async with self._session() as session:
            await session.execute(
                delete(user_hearts).where(
                    user_hearts.c.user_id == user_id,
                    user_hearts.c.store_id == store_id,
                )
            )

    # ============================================================
    # Reviews
    # ============================================================

    async def add_review(self, review: Review) -> Review:
        row = ReviewRecord(
            id=review.id,
            store_id=review.store_id,
            author_id=review.author_id,
            rating=review.rating,
            text=review.text,
            created_at=review.created_at,
        )
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return _to_review(row)

    async def reviews_for_store(self, store_id: UUID) -> list[Review]:
        async with self._session() as session:
            result = await session.execute(
                select(ReviewRecord)
                .where(ReviewRecord.store_id == store_id)
                .order_by(ReviewRecord.created_at.desc())
            )
            return [_to_review(row) for row in result.scalars().all()]
