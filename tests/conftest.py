"""Shared fixtures: in-memory repository, test client, uploads directory."""

from httpx import ASGITransport, AsyncClient
import pytest

from storefinder.main import app
from storefinder.routes.dependencies import get_repository
from storefinder.schemas import Store
from storefinder.settings import get_settings
from storefinder.stores.memory import InMemoryStoreRepository

from tests.factories import make_store


@pytest.fixture
def repo() -> InMemoryStoreRepository:
    return InMemoryStoreRepository()


@pytest.fixture
def add_store(repo: InMemoryStoreRepository):
    """Insert a store into the in-memory repository."""

    async def _add(name: str, **kwargs) -> Store:
        return await repo.add_store(make_store(name, **kwargs))

    return _add


@pytest.fixture
def upload_dir(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Point UPLOADS_DIR at a temp directory for the duration of a test."""
    path = tmp_path / "uploads"
    monkeypatch.setenv("UPLOADS_DIR", str(path))
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


@pytest.fixture
async def client(repo: InMemoryStoreRepository, upload_dir):
    """Create test client backed by the in-memory repository."""
    app.dependency_overrides[get_repository] = lambda: repo
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
