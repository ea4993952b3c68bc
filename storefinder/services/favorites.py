"""Favorites ledger ("hearts").

toggle_heart flips membership of one store in a user's hearts set:
- present -> removed (remove-if-present)
- absent  -> added (add-if-absent; adding twice never duplicates)

Membership is compared by value, so a UUID and any string spelling of it
(upper/lower case, with or without hyphens) are the same store.

Known limitation: toggling is read-then-write with no conditional update, so
two simultaneous toggles from the same user may both observe the same state.
"""

import logging
from typing import Any
from uuid import UUID

from storefinder.schemas import Store, User
from storefinder.services.errors import NotFoundError
from storefinder.stores.repository import StoreRepository

logger = logging.getLogger("uvicorn.error")


def normalize_id(value: Any) -> UUID | None:
    """Coerce a UUID-ish value to UUID, or None if it isn't one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        return None


def same_id(a: Any, b: Any) -> bool:
    """Value-based id equality across representations."""
    left, right = normalize_id(a), normalize_id(b)
    if left is not None and right is not None:
        return left == right
    return str(a).strip().lower() == str(b).strip().lower()


class FavoritesLedger:
    """Per-user set of favorited store ids."""

    def __init__(self, repository: StoreRepository) -> None:
        self.repository = repository

    async def toggle_heart(self, user_id: UUID | str, store_id: UUID | str) -> User:
        """Flip `store_id` in the user's hearts and return the updated user."""
        uid = normalize_id(user_id)
        sid = normalize_id(store_id)
        if uid is None:
            raise NotFoundError(f"Unknown user {user_id}", detail={"user_id": str(user_id)})
        if sid is None:
            raise NotFoundError(f"Store {store_id} not found", detail={"store_id": str(store_id)})

        user = await self.repository.get_user(uid)
        if user is None:
            user = await self.repository.create_user(uid)

        if any(same_id(heart, sid) for heart in user.hearts):
            await self.repository.remove_heart(uid, sid)
            logger.info(f"User {uid} unhearted store {sid}")
        else:
            if await self.repository.get_by_id(sid) is None:
                raise NotFoundError(f"Store {store_id} not found", detail={"store_id": str(sid)})
            await self.repository.add_heart(uid, sid)
            logger.info(f"User {uid} hearted store {sid}")

        updated = await self.repository.get_user(uid)
        return updated or User(id=uid)

    async def list_hearted(self, user_id: UUID | str) -> list[Store]:
        """Stores currently in the user's hearts; never raises for unknown users."""
        uid = normalize_id(user_id)
        if uid is None:
            return []
        user = await self.repository.get_user(uid)
        if user is None or not user.hearts:
            return []

        ids: list[UUID] = []
        for heart in user.hearts:
            hid = normalize_id(heart)
            if hid is not None and hid not in ids:
                ids.append(hid)
        return await self.repository.by_ids(ids)
