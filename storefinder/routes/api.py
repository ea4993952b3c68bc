"""Data-only JSON endpoints.

GET  /api/v1/search?q=              - full-text search (relevance desc)
GET  /api/v1/stores/near?lng=&lat=  - stores within 10km, nearest first
POST /api/v1/stores/{id}/heart      - toggle a store in the user's hearts
POST /api/v1/stores/{id}/reviews    - review a store
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from storefinder.routes.dependencies import (
    get_current_user_id,
    get_discovery_engine,
    get_favorites_ledger,
    get_repository,
)
from storefinder.schemas import Review, ReviewCreate, ScoredStore, StoreSummary, User
from storefinder.services.discovery import DiscoveryEngine
from storefinder.services.favorites import FavoritesLedger
from storefinder.services.stores import add_review
from storefinder.settings import get_settings
from storefinder.stores.repository import StoreRepository

router = APIRouter()


@router.get("/search", response_model=list[ScoredStore])
async def search_stores(
    q: str = Query(default="", max_length=200, description="Search text"),
    engine: DiscoveryEngine = Depends(get_discovery_engine),
) -> list[ScoredStore]:
    return await engine.search(q, limit=get_settings().search_limit)


@router.get("/stores/near", response_model=list[StoreSummary])
async def map_stores(
    lng: float = Query(ge=-180, le=180, description="Longitude"),
    lat: float = Query(ge=-90, le=90, description="Latitude"),
    engine: DiscoveryEngine = Depends(get_discovery_engine),
) -> list[StoreSummary]:
    settings = get_settings()
    return await engine.nearby(
        lng,
        lat,
        max_distance_m=settings.nearby_max_distance_m,
        limit=settings.nearby_limit,
    )


@router.post("/stores/{store_id}/heart", response_model=User)
async def heart_store(
    store_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    ledger: FavoritesLedger = Depends(get_favorites_ledger),
) -> User:
    return await ledger.toggle_heart(user_id, store_id)


@router.post("/stores/{store_id}/reviews", response_model=Review, status_code=201)
async def review_store(
    store_id: UUID,
    body: ReviewCreate,
    user_id: UUID = Depends(get_current_user_id),
    repository: StoreRepository = Depends(get_repository),
) -> Review:
    return await add_review(repository, store_id, user_id, body)
