"""Store repository protocol.

Every backend (Postgres, in-memory) implements this interface; services and
the discovery engine receive an instance at construction and never import a
concrete backend.
"""

from collections.abc import Iterable
from typing import Protocol
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


class StoreRepository(Protocol):
    """Read/write access to stores, users, hearts and reviews."""

    # Stores: reads
    async def get_by_slug(self, slug: str) -> Store | None: ...

    async def get_by_id(self, store_id: UUID) -> Store | None: ...

    async def list_stores(self, skip: int, limit: int) -> list[Store]:
        """Newest first (created_at desc, id as tie-break)."""
        ...

    async def count_stores(self) -> int: ...

    async def by_tag(self, tag: str | None) -> list[Store]:
        """Exact tag match; None matches every store with at least one tag."""
        ...

    async def distinct_tags(self) -> list[TagCount]:
        """Tag counts sorted by count desc, then tag asc."""
        ...

    async def text_search(self, query: str, limit: int) -> list[ScoredStore]:
        """Relevance desc over name and description."""
        ...

    async def near(
        self,
        lng: float,
        lat: float,
        max_distance_m: float,
        limit: int,
    ) -> list[StoreSummary]:
        """Stores within max_distance_m of (lng, lat), nearest first."""
        ...

    async def top_rated(self, limit: int, min_reviews: int = 1) -> list[RatedStore]:
        """Average rating desc; stores with fewer than min_reviews reviews are excluded."""
        ...

    async def by_ids(self, store_ids: Iterable[UUID]) -> list[Store]: ...

    async def slugs_like(self, base: str) -> list[str]:
        """Existing slugs equal to `base` or of the form `base-<n>`."""
        ...

    # Stores: writes
    async def add_store(self, store: Store) -> Store: ...

    async def save_store(self, store: Store) -> Store:
        """Overwrite all mutable fields (last write wins)."""
        ...

    # Users / hearts
    async def get_user(self, user_id: UUID) -> User | None: ...

    async def create_user(self, user_id: UUID) -> User: ...

    async def add_heart(self, user_id: UUID, store_id: UUID) -> None: ...

    async def remove_heart(self, user_id: UUID, store_id: UUID) -> None: ...

    # Reviews
    async def add_review(self, review: Review) -> Review: ...

    async def reviews_for_store(self, store_id: UUID) -> list[Review]: ...
