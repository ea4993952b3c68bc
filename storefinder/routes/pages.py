"""Render-targeted endpoints.

Each endpoint returns a RenderPayload (view name + data) for the rendering
collaborator, or a redirect. Routers are thin: call services for business logic.
"""

import json
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile
from fastapi.responses import RedirectResponse
from pydantic import ValidationError as PydanticValidationError

from storefinder.routes.dependencies import (
    get_current_user_id,
    get_discovery_engine,
    get_favorites_ledger,
    get_flashes,
    get_repository,
    redirect_with_flash,
)
from storefinder.schemas import Flash, GeoPoint, PageRedirect, RenderPayload, StoreCreate, StoreUpdate
from storefinder.services.discovery import DiscoveryEngine
from storefinder.services.errors import ValidationError
from storefinder.services.favorites import FavoritesLedger
from storefinder.services.stores import (
    get_store_by_slug,
    get_store_for_edit,
    submit_store,
    submit_store_update,
)
from storefinder.settings import get_settings
from storefinder.stores.repository import StoreRepository

router = APIRouter()


def _location(lng: float | None, lat: float | None, address: str | None) -> GeoPoint | None:
    if lng is None and lat is None:
        return None
    if lng is None or lat is None:
        raise ValidationError("Both longitude and latitude are required", detail={"lng": lng, "lat": lat})
    return GeoPoint(coordinates=(lng, lat), address=address or None)


def _invalid_form(e: PydanticValidationError) -> ValidationError:
    return ValidationError("Invalid store data", detail={"errors": json.loads(e.json(include_url=False))})


async def _read_photo(photo: UploadFile | None) -> tuple[bytes | None, str | None]:
    if photo is None:
        return None, None
    return await photo.read(), photo.content_type


@router.get("/", response_model=None)
@router.get("/stores", response_model=None)
async def list_stores(
    engine: DiscoveryEngine = Depends(get_discovery_engine),
    flashes: list[Flash] = Depends(get_flashes),
) -> RenderPayload | RedirectResponse:
    return await _stores_page(1, engine, flashes)


@router.get("/stores/page/{page}", response_model=None)
async def list_stores_page(
    page: int = Path(ge=1, description="1-based page number"),
    engine: DiscoveryEngine = Depends(get_discovery_engine),
    flashes: list[Flash] = Depends(get_flashes),
) -> RenderPayload | RedirectResponse:
    return await _stores_page(page, engine, flashes)


async def _stores_page(page: int, engine: DiscoveryEngine, flashes: list[Flash]) -> RenderPayload | RedirectResponse:
    result = await engine.list_paged(page)
    if isinstance(result, PageRedirect):
        return redirect_with_flash(f"/stores/page/{result.page}", result.message, level="info")
    return RenderPayload(
        view="stores",
        title="Stores",
        data={
            "stores": result.stores,
            "page": result.page,
            "pages": result.pages,
            "count": result.count,
        },
        flashes=flashes,
    )


@router.get("/tags", response_model=RenderPayload)
@router.get("/tags/{tag}", response_model=RenderPayload)
async def list_by_tag(
    tag: str | None = None,
    engine: DiscoveryEngine = Depends(get_discovery_engine),
    flashes: list[Flash] = Depends(get_flashes),
) -> RenderPayload:
    listing = await engine.list_by_tag(tag)
    return RenderPayload(
        view="tag",
        title="Tags",
        data={"tag": listing.tag, "tags": listing.tags, "stores": listing.stores},
        flashes=flashes,
    )


@router.get("/top", response_model=RenderPayload)
async def top_stores(
    engine: DiscoveryEngine = Depends(get_discovery_engine),
    flashes: list[Flash] = Depends(get_flashes),
) -> RenderPayload:
    stores = await engine.top_rated(get_settings().top_stores_limit)
    return RenderPayload(view="topStores", title="★ Top Stores!", data={"stores": stores}, flashes=flashes)


@router.get("/map", response_model=RenderPayload)
async def map_page(flashes: list[Flash] = Depends(get_flashes)) -> RenderPayload:
    return RenderPayload(view="map", title="Map", flashes=flashes)


@router.get("/store/{slug}", response_model=RenderPayload)
async def store_page(
    slug: str,
    repository: StoreRepository = Depends(get_repository),
    flashes: list[Flash] = Depends(get_flashes),
) -> RenderPayload:
    detail = await get_store_by_slug(repository, slug)
    return RenderPayload(
        view="store",
        title=detail.store.name,
        data={
            "store": detail.store,
            "reviews": detail.reviews,
            "averageRating": detail.average_rating,
        },
        flashes=flashes,
    )


@router.get("/hearts", response_model=RenderPayload)
async def hearted_stores(
    user_id: UUID = Depends(get_current_user_id),
    ledger: FavoritesLedger = Depends(get_favorites_ledger),
    flashes: list[Flash] = Depends(get_flashes),
) -> RenderPayload:
    stores = await ledger.list_hearted(user_id)
    return RenderPayload(view="stores", title="Hearted Stores", data={"stores": stores}, flashes=flashes)


@router.get("/add", response_model=RenderPayload)
async def add_store_form(
    user_id: UUID = Depends(get_current_user_id),
    flashes: list[Flash] = Depends(get_flashes),
) -> RenderPayload:
    return RenderPayload(view="editStore", title="Add Store", flashes=flashes)


@router.get("/stores/{store_id}/edit", response_model=RenderPayload)
async def edit_store_form(
    store_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    repository: StoreRepository = Depends(get_repository),
    flashes: list[Flash] = Depends(get_flashes),
) -> RenderPayload:
    store = await get_store_for_edit(repository, store_id, user_id)
    return RenderPayload(view="editStore", title=f"Edit {store.name}", data={"store": store}, flashes=flashes)


@router.post("/add", response_class=RedirectResponse, status_code=303)
async def create_store(
    name: str = Form(...),
    description: str = Form(default=""),
    tags: list[str] = Form(default=[]),
    lng: float | None = Form(default=None),
    lat: float | None = Form(default=None),
    address: str | None = Form(default=None),
    photo: UploadFile | None = File(default=None),
    user_id: UUID = Depends(get_current_user_id),
    repository: StoreRepository = Depends(get_repository),
) -> RedirectResponse:
    try:
        data = StoreCreate(
            name=name,
            description=description,
            tags=tags,
            location=_location(lng, lat, address),
        )
    except PydanticValidationError as e:
        raise _invalid_form(e) from e

    photo_bytes, photo_mime = await _read_photo(photo)
    store = await submit_store(
        repository,
        data,
        user_id,
        photo_bytes=photo_bytes,
        photo_mime=photo_mime,
    )
    return redirect_with_flash(
        f"/store/{store.slug}",
        f"Successfully Created {store.name}. Care to leave a review?",
        level="success",
        status_code=303,
    )


@router.post("/add/{store_id}", response_class=RedirectResponse, status_code=303)
async def update_store(
    store_id: UUID,
    name: str | None = Form(default=None),
    description: str | None = Form(default=None),
    tags: list[str] | None = Form(default=None),
    lng: float | None = Form(default=None),
    lat: float | None = Form(default=None),
    address: str | None = Form(default=None),
    photo: UploadFile | None = File(default=None),
    user_id: UUID = Depends(get_current_user_id),
    repository: StoreRepository = Depends(get_repository),
) -> RedirectResponse:
    fields: dict[str, object] = {}
    if name is not None:
        fields["name"] = name
    if description is not None:
        fields["description"] = description
    if tags is not None:
        fields["tags"] = tags
    try:
        location = _location(lng, lat, address)
        if location is not None:
            fields["location"] = location
        changes = StoreUpdate(**fields)
    except PydanticValidationError as e:
        raise _invalid_form(e) from e

    photo_bytes, photo_mime = await _read_photo(photo)
    store = await submit_store_update(
        repository,
        store_id,
        changes,
        user_id,
        photo_bytes=photo_bytes,
        photo_mime=photo_mime,
    )
    return redirect_with_flash(
        f"/stores/{store.id}/edit",
        f"Successfully updated {store.name}.",
        level="success",
        status_code=303,
    )
