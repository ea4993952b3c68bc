"""Pydantic schemas for API request/response validation."""

from storefinder.schemas.common import ErrorDetail, ErrorResponse, Flash, RenderPayload
from storefinder.schemas.store import (
    DEFAULT_PHOTO,
    GeoPoint,
    PageRedirect,
    RAW_PHOTO,
    RatedStore,
    Review,
    ReviewCreate,
    ScoredStore,
    Store,
    StoreCreate,
    StoreDetail,
    StorePage,
    StoreSummary,
    StoreUpdate,
    TagCount,
    TagListing,
    User,
)

__all__ = [
    "DEFAULT_PHOTO",
    "ErrorDetail",
    "ErrorResponse",
    "Flash",
    "GeoPoint",
    "PageRedirect",
    "RAW_PHOTO",
    "RatedStore",
    "RenderPayload",
    "Review",
    "ReviewCreate",
    "ScoredStore",
    "Store",
    "StoreCreate",
    "StoreDetail",
    "StorePage",
    "StoreSummary",
    "StoreUpdate",
    "TagCount",
    "TagListing",
    "User",
]
