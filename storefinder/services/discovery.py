"""Discovery engine: listing, tag browsing, search, geo search, top-rated.

Pagination policy:
- skip = (page - 1) * page_size; the page and the total count are fetched
  concurrently and both must finish before pages are computed
- a page past the end (empty result with skip > 0) is not an error: callers
  get a PageRedirect pointing at the last page instead

Caching:
- distinct tags and top-rated rankings go through Redis when it is initialized;
  otherwise (tests, local minimal env) the repository is queried directly
"""

from __future__ import annotations

import asyncio
import logging
import math

from redis.exceptions import RedisError

from storefinder.schemas import (
    PageRedirect,
    RAW_PHOTO,
    RatedStore,
    ScoredStore,
    StorePage,
    StoreSummary,
    TagCount,
    TagListing,
)
from storefinder.services.errors import ValidationError
from storefinder.stores.redis import (
    get_tag_list_cache,
    get_top_stores_cache,
    set_tag_list_cache,
    set_top_stores_cache,
)
from storefinder.stores.repository import StoreRepository

logger = logging.getLogger("uvicorn.error")

DEFAULT_PAGE_SIZE = 4
DEFAULT_SEARCH_LIMIT = 5
DEFAULT_MAX_DISTANCE_M = 10_000.0
DEFAULT_NEARBY_LIMIT = 10
DEFAULT_TOP_LIMIT = 10


class DiscoveryEngine:
    """Composes repository queries into the public discovery operations."""

    def __init__(
        self,
        repository: StoreRepository,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        top_min_reviews: int = 1,
        use_cache: bool = True,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.repository = repository
        self.page_size = page_size
        self.top_min_reviews = top_min_reviews
        self.use_cache = use_cache

    async def list_paged(self, page: int = 1) -> StorePage | PageRedirect:
        """Newest-first page of stores.

        Args:
            page: 1-based page number.

        Returns:
            StorePage, or PageRedirect to the last page when `page` is past the end.
        """
        if page < 1:
            raise ValidationError(f"Page must be >= 1, got {page}", detail={"page": page})

        skip = (page - 1) * self.page_size
        stores, count = await asyncio.gather(
            self.repository.list_stores(skip, self.page_size),
            self.repository.count_stores(),
        )
        pages = math.ceil(count / self.page_size)

        if not stores and skip:
            last_page = max(pages, 1)
            logger.info(f"Page {page} out of range ({count} stores), redirecting to page {last_page}")
            return PageRedirect(
                page=last_page,
                message=(
                    f"Hey! You asked for page {page}. But that doesn't exist. "
                    f"So I put you on page {last_page}"
                ),
            )

        return StorePage(stores=stores, page=page, pages=pages, count=count)

    async def list_by_tag(self, tag: str | None = None) -> TagListing:
        """Stores carrying `tag` (any tag when None) plus the full tag menu."""
        tag = tag.strip() if tag else None
        tags, stores = await asyncio.gather(
            self._distinct_tags(),
            self.repository.by_tag(tag or None),
        )
        return TagListing(tag=tag or None, tags=tags, stores=stores)

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[ScoredStore]:
        """Full-text search ranked by relevance score (desc).

        A blank query or a term matching nothing yields an empty list.
        """
        query = (query or "").strip()
        if not query or limit < 1:
            return []
        return await self.repository.text_search(query, limit)

    async def nearby(
        self,
        lng: float,
        lat: float,
        max_distance_m: float = DEFAULT_MAX_DISTANCE_M,
        limit: int = DEFAULT_NEARBY_LIMIT,
    ) -> list[StoreSummary]:
        """Stores within `max_distance_m` of (lng, lat), nearest first.

        Returns the reduced projection (slug, name, description, location, photo).
        """
        if not -180.0 <= lng <= 180.0 or not -90.0 <= lat <= 90.0:
            raise ValidationError(
                "Coordinates out of range",
                detail={"lng": lng, "lat": lat},
            )
        if max_distance_m <= 0 or limit < 1:
            return []
        return await self.repository.near(lng, lat, max_distance_m, limit)

    async def top_rated(self, limit: int = DEFAULT_TOP_LIMIT) -> list[RatedStore]:
        """Stores ranked by average review rating (desc).

        Stores with fewer than `top_min_reviews` reviews are left out.
        """
        if limit < 1:
            return []

        if self.use_cache:
            cached = await _try_get_cached_top(limit)
            if cached is not None:
                return cached

        ranked = await self.repository.top_rated(limit, self.top_min_reviews)

        if self.use_cache:
            await _try_set_cached_top(limit, ranked)
        return ranked

    async def _distinct_tags(self) -> list[TagCount]:
        if self.use_cache:
            cached = await _try_get_cached_tags()
            if cached is not None:
                return cached

        tags = await self.repository.distinct_tags()

        if self.use_cache:
            await _try_set_cached_tags(tags)
        return tags


async def _try_get_cached_tags() -> list[TagCount] | None:
    try:
        payload = await get_tag_list_cache()
    except (RuntimeError, RedisError):
        return None
    if payload is None:
        return None
    return [TagCount.model_validate(item) for item in payload]


async def _try_set_cached_tags(tags: list[TagCount]) -> None:
    try:
        await set_tag_list_cache([t.model_dump(mode="json") for t in tags])
    except RuntimeError:
        return
    except RedisError as e:
        logger.warning(f"Failed to cache tag list: {e}")


async def _try_get_cached_top(limit: int) -> list[RatedStore] | None:
    try:
        payload = await get_top_stores_cache(limit)
    except (RuntimeError, RedisError):
        return None
    if payload is None:
        return None
    return [RatedStore.model_validate(item) for item in payload]


async def _try_set_cached_top(limit: int, ranked: list[RatedStore]) -> None:
    try:
        await set_top_stores_cache(limit, [r.model_dump(mode="json", context=RAW_PHOTO) for r in ranked])
    except RuntimeError:
        return
    except RedisError as e:
        logger.warning(f"Failed to cache top stores: {e}")
