"""FastAPI application entry point.

Store Finder API - store discovery, ranking and favorites.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storefinder.routes import api_router
from storefinder.schemas import ErrorDetail, ErrorResponse
from storefinder.services.errors import StoreFinderError
from storefinder.settings import get_settings
from storefinder.stores.memory import InMemoryStoreRepository
from storefinder.stores.postgres import close_db, init_db, ping_db
from storefinder.stores.redis import close_redis, init_redis
from storefinder.stores.sql_repository import PostgresStoreRepository

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    settings = get_settings()

    if settings.store_backend == "memory":
        app.state.repository = InMemoryStoreRepository()
        logger.info("Using in-memory store repository")
    else:
        try:
            await init_db()
            await ping_db()
            logger.info("Postgres connected")
        except Exception:
            logger.exception("Postgres init failed")
        app.state.repository = PostgresStoreRepository()

    # Redis is an optional cache; discovery falls back to the repository without it
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed")
        await close_redis()

    yield

    # Shutdown
    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Store discovery, ranking and favorites API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreFinderError)
    async def store_finder_exception_handler(request: Request, exc: StoreFinderError) -> JSONResponse:
        """Domain errors in the structured error format with their own status."""
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        body = ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail))
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc) if settings.debug else "Internal server error",
                    "detail": None,
                }
            },
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Include API routes
    app.include_router(api_router)

    # Stored photos are served by filename only
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.uploads_dir, check_dir=False),
        name="uploads",
    )

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storefinder.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
