"""Store lifecycle: slugs, creation, owner-gated updates, store pages, reviews.

Slugs:
- Derived from the name at creation: {name normalized}, or {name}-{n+1}
  when n stores already use that base
- Never regenerated on update, so links to a store stay valid after a rename

Updates are read -> validate (owner) -> merge -> write with last-write-wins
semantics; there is no optimistic-lock token.
"""

from datetime import datetime, timezone
import logging
from pathlib import Path
import re
import unicodedata
from uuid import UUID, uuid4

from redis.exceptions import RedisError

from storefinder.schemas import (
    Review,
    ReviewCreate,
    Store,
    StoreCreate,
    StoreDetail,
    StoreUpdate,
)
from storefinder.services.errors import AuthorizationError, NotFoundError
from storefinder.services.images import discard_photo, ingest_photo
from storefinder.stores.redis import invalidate_tag_list, invalidate_top_stores
from storefinder.stores.repository import StoreRepository

logger = logging.getLogger("uvicorn.error")

DEFAULT_SLUG = "store"


def slugify(name: str) -> str:
    """Normalize a store name into a URL-safe slug.

    - Strip accents
    - Lowercase
    - Replace runs of non-alphanumerics with a single hyphen

    Example:
        >>> slugify("Café Olé & Co.")
        "cafe-ole-co"
    """
    ascii_name = unicodedata.normalize("NFKD", name or "").encode("ascii", "ignore").decode("ascii")
    result = re.sub(r"[^a-z0-9]+", "-", ascii_name.lower())
    return result.strip("-") or DEFAULT_SLUG


def unique_slug(base: str, existing: list[str]) -> str:
    """Return `base`, or `base-<n+1>` when n existing slugs already match it."""
    if not existing:
        return base
    candidate = f"{base}-{len(existing) + 1}"
    taken = set(existing)
    n = len(existing) + 1
    # Gaps (e.g. base and base-3 only) could make the counted suffix collide.
    while candidate in taken:
        n += 1
        candidate = f"{base}-{n}"
    return candidate


def confirm_owner(store: Store, user_id: UUID) -> None:
    """Raise AuthorizationError unless `user_id` authored `store`."""
    if store.author_id != user_id:
        raise AuthorizationError(
            "You must own a store before you can edit it!",
            detail={"store_id": str(store.id)},
        )


async def ensure_user(repository: StoreRepository, user_id: UUID) -> None:
    if await repository.get_user(user_id) is None:
        await repository.create_user(user_id)


async def create_store(
    repository: StoreRepository,
    data: StoreCreate,
    author_id: UUID,
    *,
    photo: str | None = None,
) -> Store:
    """Create a store owned by `author_id`.

    Args:
        repository: Store repository.
        data: Submitted fields.
        author_id: Authenticated user creating the store.
        photo: Filename returned by the photo ingestion pipeline, if any.

    Returns:
        The persisted store.
    """
    await ensure_user(repository, author_id)

    base = slugify(data.name)
    slug = unique_slug(base, await repository.slugs_like(base))

    store = Store(
        id=uuid4(),
        name=data.name,
        slug=slug,
        description=data.description,
        tags=data.tags,
        location=data.location,
        photo=photo,
        author_id=author_id,
        created_at=datetime.now(timezone.utc),
    )
    created = await repository.add_store(store)
    logger.info(f"Created store {created.slug} ({created.id}) by {author_id}")

    await _try_invalidate_tags()
    return created


async def submit_store(
    repository: StoreRepository,
    data: StoreCreate,
    author_id: UUID,
    *,
    photo_bytes: bytes | None = None,
    photo_mime: str | None = None,
    upload_dir: str | Path | None = None,
) -> Store:
    """Run the photo pipeline, then create the store.

    If the photo is rejected nothing is created; if creation fails the stored
    photo is removed again, so no store ever references a missing file and no
    file is left without its store.
    """
    photo = await ingest_photo(photo_bytes, photo_mime, upload_dir=upload_dir)
    try:
        return await create_store(repository, data, author_id, photo=photo)
    except Exception:
        await discard_photo(photo, upload_dir=upload_dir)
        raise


async def submit_store_update(
    repository: StoreRepository,
    store_id: UUID,
    changes: StoreUpdate,
    requester_id: UUID,
    *,
    photo_bytes: bytes | None = None,
    photo_mime: str | None = None,
    upload_dir: str | Path | None = None,
) -> Store:
    """Owner check first, then the photo pipeline, then the update.

    A replaced photo is removed once the update is saved; on failure the new
    one is removed instead.
    """
    current = await get_store_for_edit(repository, store_id, requester_id)

    photo = await ingest_photo(photo_bytes, photo_mime, upload_dir=upload_dir)
    if photo is not None:
        changes = StoreUpdate(**changes.model_dump(exclude_unset=True, exclude={"photo"}), photo=photo)
    try:
        updated = await update_store(repository, store_id, changes, requester_id)
    except Exception:
        await discard_photo(photo, upload_dir=upload_dir)
        raise

    if photo is not None and current.photo and current.photo != updated.photo:
        await discard_photo(current.photo, upload_dir=upload_dir)
    return updated


async def get_store_by_slug(repository: StoreRepository, slug: str) -> StoreDetail:
    """Store page data: the store, its reviews and their average rating."""
    store = await repository.get_by_slug(slug)
    if store is None:
        raise NotFoundError(f"Store {slug!r} not found", detail={"slug": slug})

    reviews = await repository.reviews_for_store(store.id)
    average = sum(r.rating for r in reviews) / len(reviews) if reviews else None
    return StoreDetail(store=store, reviews=reviews, average_rating=average)


async def get_store_for_edit(repository: StoreRepository, store_id: UUID, requester_id: UUID) -> Store:
    store = await repository.get_by_id(store_id)
    if store is None:
        raise NotFoundError(f"Store {store_id} not found", detail={"store_id": str(store_id)})
    confirm_owner(store, requester_id)
    return store


async def update_store(
    repository: StoreRepository,
    store_id: UUID,
    changes: StoreUpdate,
    requester_id: UUID,
) -> Store:
    """Merge explicitly-set fields of `changes` into the store.

    Raises:
        NotFoundError: Unknown store.
        AuthorizationError: Requester isn't the author; nothing is written.
    """
    store = await get_store_for_edit(repository, store_id, requester_id)

    updates = changes.model_dump(exclude_unset=True)
    if updates.get("name") is None:
        updates.pop("name", None)
    if "tags" in updates and updates["tags"] is None:
        updates["tags"] = []

    # Re-validate so invariants (tags, location type) hold on the merged record.
    merged = Store.model_validate({**store.model_dump(), **updates})
    saved = await repository.save_store(merged)
    logger.info(f"Updated store {saved.slug} ({saved.id}): {sorted(updates)}")

    if "tags" in updates:
        await _try_invalidate_tags()
    # Top-rated entries embed the full store.
    await _try_invalidate_top()
    return saved


async def add_review(
    repository: StoreRepository,
    store_id: UUID,
    author_id: UUID,
    data: ReviewCreate,
) -> Review:
    """Attach a review to an existing store."""
    if await repository.get_by_id(store_id) is None:
        raise NotFoundError(f"Store {store_id} not found", detail={"store_id": str(store_id)})
    await ensure_user(repository, author_id)

    review = Review(
        id=uuid4(),
        store_id=store_id,
        author_id=author_id,
        rating=data.rating,
        text=data.text,
        created_at=datetime.now(timezone.utc),
    )
    saved = await repository.add_review(review)
    await _try_invalidate_top()
    return saved


async def _try_invalidate_tags() -> None:
    try:
        await invalidate_tag_list()
    except RuntimeError:
        return
    except RedisError as e:
        logger.warning(f"Failed to invalidate tag cache: {e}")


async def _try_invalidate_top() -> None:
    try:
        await invalidate_top_stores()
    except RuntimeError:
        return
    except RedisError as e:
        logger.warning(f"Failed to invalidate top stores cache: {e}")
