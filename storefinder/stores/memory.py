"""In-memory store repository.

Dict-backed implementation of `StoreRepository`. Scoring, distance and rating
averages come from `LocalQueryCapability`, so results follow the same ordering
contracts as the Postgres backend.

Used with STORE_BACKEND=memory for local development and as the test double.
Data lives for the lifetime of the process.
"""

from collections import Counter
from collections.abc import Iterable
import re
from uuid import UUID

from storefinder.schemas import (
    RatedStore,
    Review,
    ScoredStore,
    Store,
    StoreSummary,
    TagCount,
    User,
)
from storefinder.services.query_capability import LocalQueryCapability, QueryCapability


class InMemoryStoreRepository:
    """Process-local `StoreRepository`."""

    def __init__(self, capability: QueryCapability | None = None) -> None:
        self._capability = capability or LocalQueryCapability()
        self._stores: dict[UUID, Store] = {}
        # Lists rather than sets so a corrupted ledger (repeats) can be represented.
        self._hearts: dict[UUID, list[UUID]] = {}
        self._reviews: list[Review] = []

    # ============================================================
    # Stores: reads
    # ============================================================

    async def get_by_slug(self, slug: str) -> Store | None:
        for store in self._stores.values():
            if store.slug == slug:
                return store.model_copy(deep=True)
        return None

    async def get_by_id(self, store_id: UUID) -> Store | None:
        store = self._stores.get(store_id)
        return store.model_copy(deep=True) if store else None

    async def list_stores(self, skip: int, limit: int) -> list[Store]:
        ordered = sorted(
            self._stores.values(),
            key=lambda s: (s.created_at, s.id),
            reverse=True,
        )
        return [s.model_copy(deep=True) for s in ordered[skip : skip + limit]]

    async def count_stores(self) -> int:
        return len(self._stores)

    async def by_tag(self, tag: str | None) -> list[Store]:
        if tag is None:
            matches = [s for s in self._stores.values() if s.tags]
        else:
            matches = [s for s in self._stores.values() if tag in s.tags]
        return [s.model_copy(deep=True) for s in matches]

    async def distinct_tags(self) -> list[TagCount]:
        counts: Counter[str] = Counter()
        for store in self._stores.values():
            counts.update(set(store.tags))
        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [TagCount(tag=tag, count=count) for tag, count in ordered]

    async def text_search(self, query: str, limit: int) -> list[ScoredStore]:
        documents = [(s.id, f"{s.name} {s.description}") for s in self._stores.values()]
        ranked = self._capability.score_search(query, documents)
        return [
            ScoredStore(**self._stores[store_id].model_dump(), score=score)
            for store_id, score in ranked[:limit]
        ]

    async def near(
        self,
        lng: float,
        lat: float,
        max_distance_m: float,
        limit: int,
    ) -> list[StoreSummary]:
        points = [
            (s.id, s.location.lng, s.location.lat)
            for s in self._stores.values()
            if s.location is not None
        ]
        ranked = self._capability.radius_search(lng, lat, max_distance_m, points)
        return [
            StoreSummary.model_validate(
                self._stores[store_id].model_dump(include={"slug", "name", "description", "location", "photo"})
            )
            for store_id, _distance in ranked[:limit]
        ]

    async def top_rated(self, limit: int, min_reviews: int = 1) -> list[RatedStore]:
        ratings: dict[UUID, list[int]] = {}
        for review in self._reviews:
            ratings.setdefault(review.store_id, []).append(review.rating)

        rated: list[RatedStore] = []
        for store_id, values in ratings.items():
            store = self._stores.get(store_id)
            if store is None or len(values) < max(min_reviews, 1):
                continue
            average = self._capability.aggregate_average(values)
            rated.append(
                RatedStore(
                    store=store.model_copy(deep=True),
                    average_rating=average,
                    review_count=len(values),
                )
            )
        rated.sort(key=lambda r: r.average_rating, reverse=True)
        return rated[:limit]

    async def by_ids(self, store_ids: Iterable[UUID]) -> list[Store]:
        wanted = set(store_ids)
        return [s.model_copy(deep=True) for s in self._stores.values() if s.id in wanted]

    async def slugs_like(self, base: str) -> list[str]:
        pattern = re.compile(rf"^{re.escape(base)}(-[0-9]+)?$")
        return [s.slug for s in self._stores.values() if pattern.match(s.slug)]

    # ============================================================
    # Stores: writes
    # ============================================================

    async def add_store(self, store: Store) -> Store:
        if store.id in self._stores:
            raise ValueError(f"Store {store.id} already exists")
        if any(s.slug == store.slug for s in self._stores.values()):
            raise ValueError(f"Slug {store.slug!r} already taken")
        self._stores[store.id] = store.model_copy(deep=True)
        return store.model_copy(deep=True)

    async def save_store(self, store: Store) -> Store:
        if store.id not in self._stores:
            raise KeyError(store.id)
        self._stores[store.id] = store.model_copy(deep=True)
        return store.model_copy(deep=True)

    # ============================================================
    # Users / hearts
    # ============================================================

    async def get_user(self, user_id: UUID) -> User | None:
        hearts = self._hearts.get(user_id)
        if hearts is None:
            return None
        return User(id=user_id, hearts=list(hearts))

    async def create_user(self, user_id: UUID) -> User:
        self._hearts.setdefault(user_id, [])
        return User(id=user_id, hearts=list(self._hearts[user_id]))

    async def add_heart(self, user_id: UUID, store_id: UUID) -> None:
        hearts = self._hearts.setdefault(user_id, [])
        if store_id not in hearts:
            hearts.append(store_id)

    async def remove_heart(self, user_id: UUID, store_id: UUID) -> None:
        hearts = self._hearts.get(user_id)
        if hearts is not None:
            self._hearts[user_id] = [h for h in hearts if h != store_id]

    # ============================================================
    # Reviews
    # ============================================================

    async def add_review(self, review: Review) -> Review:
        self._reviews.append(review.model_copy(deep=True))
        return review

    async def reviews_for_store(self, store_id: UUID) -> list[Review]:
        reviews = [r.model_copy(deep=True) for r in self._reviews if r.store_id == store_id]
        return sorted(reviews, key=lambda r: r.created_at, reverse=True)
