from uuid import uuid4

import pytest

from storefinder.schemas import GeoPoint, ReviewCreate, StoreCreate, StoreUpdate
from storefinder.services.errors import (
    AuthorizationError,
    NotFoundError,
    PersistenceError,
    UnsupportedMediaType,
)
from storefinder.services.stores import (
    add_review,
    create_store,
    get_store_by_slug,
    slugify,
    submit_store,
    submit_store_update,
    unique_slug,
    update_store,
)
from storefinder.stores.memory import InMemoryStoreRepository

from tests.factories import ORIGIN, image_bytes


def test_slugify():
    assert slugify("Café Olé & Co.") == "cafe-ole-co"
    assert slugify("  Durand   Coffee ") == "durand-coffee"
    assert slugify("!!!") == "store"


def test_unique_slug():
    assert unique_slug("coffee", []) == "coffee"
    assert unique_slug("coffee", ["coffee"]) == "coffee-2"
    assert unique_slug("coffee", ["coffee", "coffee-2"]) == "coffee-3"
    # Gap in the numbering must not produce a collision.
    assert unique_slug("coffee", ["coffee", "coffee-3"]) == "coffee-4"


@pytest.mark.asyncio
async def test_create_store_assigns_unique_slugs(repo):
    author = uuid4()
    first = await create_store(repo, StoreCreate(name="Durand Coffee"), author)
    second = await create_store(repo, StoreCreate(name="Durand  Coffee!"), author)

    assert first.slug == "durand-coffee"
    assert second.slug == "durand-coffee-2"
    assert second.author_id == author
    assert await repo.get_user(author) is not None


@pytest.mark.asyncio
async def test_create_store_normalizes_tags_and_location(repo):
    store = await create_store(
        repo,
        StoreCreate(
            name="Durand Coffee",
            tags=[" Wifi ", "", "Wifi", "Vegetarian"],
            location={"type": "Polygon", "coordinates": ORIGIN},
        ),
        uuid4(),
    )

    assert store.tags == ["Wifi", "Vegetarian"]
    assert store.location.type == "Point"
    assert store.location.coordinates == ORIGIN


@pytest.mark.asyncio
async def test_update_by_non_owner_is_rejected_and_nothing_changes(repo):
    owner = uuid4()
    store = await create_store(repo, StoreCreate(name="Durand Coffee", tags=["Wifi"]), owner)

    with pytest.raises(AuthorizationError):
        await update_store(repo, store.id, StoreUpdate(name="Hijacked", tags=[]), uuid4())

    unchanged = await repo.get_by_id(store.id)
    assert unchanged == store


@pytest.mark.asyncio
async def test_update_merges_only_set_fields_and_keeps_slug(repo):
    owner = uuid4()
    store = await create_store(
        repo,
        StoreCreate(name="Durand Coffee", description="Espresso", tags=["Wifi"]),
        owner,
    )

    updated = await update_store(
        repo,
        store.id,
        StoreUpdate(name="Durand Coffee & Tea", location=GeoPoint(coordinates=ORIGIN)),
        owner,
    )

    assert updated.name == "Durand Coffee & Tea"
    assert updated.slug == "durand-coffee"
    assert updated.description == "Espresso"
    assert updated.tags == ["Wifi"]
    assert updated.location.type == "Point"
    assert (await repo.get_by_slug("durand-coffee")).name == "Durand Coffee & Tea"


@pytest.mark.asyncio
async def test_update_unknown_store_raises(repo):
    with pytest.raises(NotFoundError):
        await update_store(repo, uuid4(), StoreUpdate(name="X"), uuid4())


@pytest.mark.asyncio
async def test_submit_store_with_rejected_photo_creates_nothing(repo, tmp_path):
    with pytest.raises(UnsupportedMediaType):
        await submit_store(
            repo,
            StoreCreate(name="Durand Coffee"),
            uuid4(),
            photo_bytes=b"hello",
            photo_mime="text/plain",
            upload_dir=tmp_path,
        )

    assert await repo.count_stores() == 0
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_submit_store_removes_photo_when_creation_fails(tmp_path):
    class FailingRepo(InMemoryStoreRepository):
        async def add_store(self, store):
            raise PersistenceError("disk full")

    with pytest.raises(PersistenceError):
        await submit_store(
            FailingRepo(),
            StoreCreate(name="Durand Coffee"),
            uuid4(),
            photo_bytes=image_bytes(20, 10),
            photo_mime="image/png",
            upload_dir=tmp_path,
        )

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_submit_store_stores_photo_name(repo, tmp_path):
    store = await submit_store(
        repo,
        StoreCreate(name="Durand Coffee"),
        uuid4(),
        photo_bytes=image_bytes(20, 10),
        photo_mime="image/png",
        upload_dir=tmp_path,
    )

    assert store.photo is not None
    assert (tmp_path / store.photo).exists()


@pytest.mark.asyncio
async def test_submit_store_update_checks_owner_before_ingesting(repo, tmp_path):
    store = await create_store(repo, StoreCreate(name="Durand Coffee"), uuid4())

    with pytest.raises(AuthorizationError):
        await submit_store_update(
            repo,
            store.id,
            StoreUpdate(description="x"),
            uuid4(),
            photo_bytes=image_bytes(20, 10),
            photo_mime="image/png",
            upload_dir=tmp_path,
        )

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_submit_store_update_replaces_photo(repo, tmp_path):
    owner = uuid4()
    store = await create_store(repo, StoreCreate(name="Durand Coffee"), owner)

    updated = await submit_store_update(
        repo,
        store.id,
        StoreUpdate(description="New"),
        owner,
        photo_bytes=image_bytes(20, 10),
        photo_mime="image/png",
        upload_dir=tmp_path,
    )

    assert updated.description == "New"
    assert (tmp_path / updated.photo).exists()


@pytest.mark.asyncio
async def test_store_page_with_reviews(repo):
    store = await create_store(repo, StoreCreate(name="Durand Coffee"), uuid4())
    await add_review(repo, store.id, uuid4(), ReviewCreate(rating=5, text="Great"))
    await add_review(repo, store.id, uuid4(), ReviewCreate(rating=2))

    detail = await get_store_by_slug(repo, "durand-coffee")

    assert detail.store.id == store.id
    assert len(detail.reviews) == 2
    assert detail.average_rating == 3.5


@pytest.mark.asyncio
async def test_store_page_unknown_slug(repo):
    with pytest.raises(NotFoundError):
        await get_store_by_slug(repo, "nope")


@pytest.mark.asyncio
async def test_review_unknown_store_raises(repo):
    with pytest.raises(NotFoundError):
        await add_review(repo, uuid4(), uuid4(), ReviewCreate(rating=4))


@pytest.mark.asyncio
async def test_submit_store_update_removes_replaced_photo(repo, tmp_path):
    owner = uuid4()
    store = await submit_store(
        repo,
        StoreCreate(name="Durand Coffee"),
        owner,
        photo_bytes=image_bytes(20, 10),
        photo_mime="image/png",
        upload_dir=tmp_path,
    )
    old_photo = store.photo

    updated = await submit_store_update(
        repo,
        store.id,
        StoreUpdate(),
        owner,
        photo_bytes=image_bytes(30, 10),
        photo_mime="image/png",
        upload_dir=tmp_path,
    )

    assert updated.photo != old_photo
    assert [p.name for p in tmp_path.iterdir()] == [updated.photo]


@pytest.mark.asyncio
async def test_submit_store_update_without_photo_keeps_file(repo, tmp_path):
    owner = uuid4()
    store = await submit_store(
        repo,
        StoreCreate(name="Durand Coffee"),
        owner,
        photo_bytes=image_bytes(20, 10),
        photo_mime="image/png",
        upload_dir=tmp_path,
    )

    updated = await submit_store_update(repo, store.id, StoreUpdate(description="New"), owner, upload_dir=tmp_path)

    assert updated.photo == store.photo
    assert (tmp_path / store.photo).exists()
