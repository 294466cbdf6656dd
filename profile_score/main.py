"""FastAPI application entry point.

Profile Score API - Instagram marketing score and ranking for clinic profiles.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from profile_score.routes import api_router
from profile_score.settings import get_settings
from profile_score.stores.postgres import init_db, close_db, ping_db
from profile_score.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Connects only the backends that are configured. A failed connection is
    logged, not fatal: the profile store and rate limiter degrade on their own.
    """
    settings = get_settings()

    if settings.profile_store_backend == "postgres":
        try:
            await init_db()
            await ping_db()
            logger.info("Postgres connected")
        except Exception:
            logger.exception("Postgres init failed")
    else:
        logger.info(f"Profile store: {settings.profiles_path}")

    if settings.rate_limit_backend == "redis":
        try:
            await init_redis()
        except Exception:
            logger.exception("Redis init failed")

    yield

    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Instagram profile marketing score with market ranking",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-RateLimit-Remaining"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
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

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "profile_score.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
