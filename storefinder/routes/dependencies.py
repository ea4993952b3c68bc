"""Request-scoped dependencies shared by routers.

- get_repository: repository built in the app lifespan (app.state.repository);
  tests override it with an in-memory instance
- get_current_user_id: identity supplied by the session collaborator via the
  X-User-Id header
- get_flashes: flash messages echoed back in X-Flash after a redirect
"""

from typing import get_args
from urllib.parse import quote, unquote
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from fastapi.responses import RedirectResponse

from storefinder.schemas import Flash
from storefinder.schemas.common import FlashLevel
from storefinder.services.discovery import DiscoveryEngine
from storefinder.services.favorites import FavoritesLedger
from storefinder.settings import get_settings
from storefinder.stores.repository import StoreRepository

FLASH_LEVELS = frozenset(get_args(FlashLevel))


def get_repository(request: Request) -> StoreRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise RuntimeError("Store repository not initialized.")
    return repository


def get_discovery_engine(repository: StoreRepository = Depends(get_repository)) -> DiscoveryEngine:
    settings = get_settings()
    return DiscoveryEngine(
        repository,
        page_size=settings.page_size,
        top_min_reviews=settings.top_stores_min_reviews,
    )


def get_favorites_ledger(repository: StoreRepository = Depends(get_repository)) -> FavoritesLedger:
    return FavoritesLedger(repository)


def get_optional_user_id(x_user_id: str | None = Header(default=None)) -> UUID | None:
    if not x_user_id:
        return None
    try:
        return UUID(x_user_id.strip())
    except ValueError:
        return None


def get_current_user_id(user_id: UUID | None = Depends(get_optional_user_id)) -> UUID:
    if user_id is None:
        raise HTTPException(
            status_code=401,
            detail={
                "error": {
                    "code": "UNAUTHENTICATED",
                    "message": "You must be logged in to do that!",
                    "detail": None,
                }
            },
        )
    return user_id


def encode_flash(flash: Flash) -> str:
    return f"{flash.level}:{quote(flash.message)}"


def parse_flash(value: str) -> Flash | None:
    """Decode an X-Flash value; malformed values are dropped."""
    level, sep, message = value.partition(":")
    if not sep or level not in FLASH_LEVELS or not message:
        return None
    return Flash(level=level, message=unquote(message))


def get_flashes(x_flash: list[str] | None = Header(default=None)) -> list[Flash]:
    """Flashes echoed back by the session collaborator after a redirect."""
    flashes = []
    for value in x_flash or []:
        flash = parse_flash(value.strip())
        if flash is not None:
            flashes.append(flash)
    return flashes


def redirect_with_flash(url: str, message: str, level: str = "info", status_code: int = 302) -> RedirectResponse:
    """Redirect and hand a flash message to the session collaborator.

    The message travels URL-quoted in the X-Flash header as "<level>:<message>".
    The collaborator sends the header back on the follow-up request, and the
    rendered page lists it under `flashes`.
    """
    return RedirectResponse(
        url=url,
        status_code=status_code,
        headers={"X-Flash": encode_flash(Flash(level=level, message=message))},
    )
