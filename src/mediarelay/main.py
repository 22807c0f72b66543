"""Main application entrypoint for the MediaRelay service."""

import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from mediarelay.api.exception_handlers import register_exception_handlers
from mediarelay.api.v1 import routes_health
from mediarelay.api.v1.routes_auth import router as auth_router
from mediarelay.api.v1.routes_upload import router as upload_router
from mediarelay.core.config import settings
from mediarelay.core.logging import setup_logging
from mediarelay.core.rate_limit import SlidingWindowRateLimiter
from mediarelay.middleware import HTTPErrorLoggingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.http_client.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    # Initialize logging first
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )

    # Shared outbound resources, constructed once per process
    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.RELAY_TIMEOUT_SECONDS, connect=settings.INIT_TIMEOUT_SECONDS),
    )
    app.state.init_rate_limiter = SlidingWindowRateLimiter(
        max_requests=settings.INIT_RATE_LIMIT_REQUESTS,
        window_seconds=settings.INIT_RATE_LIMIT_WINDOW_SECONDS,
    )

    app.add_middleware(HTTPErrorLoggingMiddleware)
    register_exception_handlers(app)

    # Register routers
    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)
    app.include_router(auth_router)

    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
