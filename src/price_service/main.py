# src/price_service/main.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Application Entry (Adapters Bootstrap)

Synopsis:
    FastAPI bootstrap that wires middleware, exception handlers and routers.
    Provides an application factory (`create_app`), a module-level eager app
    (`app`) for uvicorn and tooling, and `run()` for the console script.

Design:
    • Bootstrap only (no business logic): routers + middleware + handlers.
    • Lifespan initializes Redis, the outbound HTTP client, the provider map,
      the use cases and the rate-limit sweeper, and tears them down safely.
    • Middleware order (outermost first): CORS, request id, rate limit.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from price_service.adapters.routers import api_router, health, metrics
from price_service.config.settings import Settings, get_settings
from price_service.dependencies.prices import build_container
from price_service.domain.interfaces.gateways.price_provider import PriceProvider
from price_service.infrastructure.caching.redis_client import close_redis, init_redis, ping_redis
from price_service.infrastructure.http.errors import install_exception_handlers
from price_service.infrastructure.logging.logger import configure_root_logging, get_json_logger
from price_service.infrastructure.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from price_service.infrastructure.middleware.request_id import RequestIdMiddleware

SERVICE_NAME = "price-service"

logger = get_json_logger(__name__)


def _stable_operation_id(route: APIRoute) -> str:
    """Deterministic operationId: ``<methods>_<path>``."""
    methods = ",".join(sorted(route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "")
    return f"{methods.lower()}_{path.lower()}"


def _make_lifespan(
    provider: PriceProvider | None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    @asynccontextmanager
    async def runtime_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Initialize and tear down shared infrastructure.

        Args:
            app: FastAPI application instance.

        Yields:
            None: Control back to FastAPI to serve requests.
        """
        settings: Settings = app.state.settings
        limiter: RateLimiter = app.state.rate_limiter

        init_redis(settings)
        if not await ping_redis():
            logger.warning("startup.redis_unreachable", extra={"extra": {"degraded": True}})

        http = httpx.AsyncClient(timeout=settings.upstream_timeout_s)
        app.state.http_client = http
        app.state.container = build_container(settings, http=http, provider=provider)
        sweeper = limiter.start_sweeper()
        logger.info(
            "startup.complete",
            extra={
                "extra": {
                    "service": SERVICE_NAME,
                    "version": settings.service_version,
                    "environment": settings.environment.value,
                }
            },
        )
        try:
            yield
        finally:
            await RateLimiter.stop_sweeper(sweeper)
            await http.aclose()
            await close_redis()
            logger.info("shutdown.complete", extra={"extra": {"service": SERVICE_NAME}})

    return runtime_lifespan


def _attach_middlewares(app: FastAPI, limiter: RateLimiter) -> None:
    """Attach core middleware; the last one added runs first."""
    app.add_middleware(RateLimitMiddleware, limiter=limiter)
    app.add_middleware(RequestIdMiddleware)


def _attach_cors(app: FastAPI) -> None:
    """Permissive CORS: any origin and method, ``X-API-Key`` allowed."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*", "X-API-Key"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
    )


def create_app(
    settings: Settings | None = None,
    *,
    provider: PriceProvider | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Explicit settings; defaults to the cached ``get_settings()``.
        provider: Optional provider override (tests); defaults to the
            configured provider map.

    Returns:
        FastAPI: Fully configured application instance.
    """
    resolved = settings or get_settings()
    configure_root_logging(resolved.log_level)

    app = FastAPI(
        title="Price Service",
        version=resolved.service_version,
        description="Cached current and historical stock prices.",
        lifespan=_make_lifespan(provider),
        generate_unique_id_function=_stable_operation_id,
    )
    app.state.settings = resolved
    app.state.rate_limiter = RateLimiter(
        resolved.rate_limit_requests, resolved.rate_limit_window_s
    )

    install_exception_handlers(app)
    _attach_middlewares(app, app.state.rate_limiter)
    _attach_cors(app)

    app.include_router(health)
    app.include_router(api_router)
    app.include_router(metrics)
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` with uvicorn on ``PORT``."""
    settings = get_settings()
    uvicorn.run(
        "price_service.main:app",
        host="0.0.0.0",  # noqa: S104
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
