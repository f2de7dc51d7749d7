"""Entry point for the FastAPI-powered anime catalog proxy."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .cache import ResponseCache
from .config import settings
from .services.dispatcher import CapabilityDispatcher, DispatchResult
from .services.fallback import FallbackProviderAdapter
from .services.native import NativeProviderAdapter
from .services.providers import TransportFailure
from .utils import coerce_int

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout_seconds, connect=5.0),
            follow_redirects=True,
        )
    )

    native = NativeProviderAdapter.from_specs(
        settings.native_providers, timeout=settings.native_timeout_seconds
    )
    # Probe the optional library once, off the event loop.
    await asyncio.to_thread(native.is_available)

    fallback = FallbackProviderAdapter(
        http_client,
        settings.fallback_api_urls,
        user_agent=settings.user_agent,
        page_size=settings.fallback_page_size,
    )
    cache = ResponseCache(settings.cache_max_entries, settings.cache_ttl_seconds)
    fastapi_app.state.dispatcher = CapabilityDispatcher(
        native,
        fallback,
        cache,
        search_ttl_seconds=settings.search_cache_ttl_seconds,
    )
    logger.info(
        "[%s] ready (native=%s, fallback=%s)",
        settings.app_name,
        native.source_label or "unavailable",
        ", ".join(fallback.base_urls),
    )

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Unified anime catalog with a native provider and a Jikan fallback",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Provider"],
    )

    @fastapi_app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    register_routes(fastapi_app)
    return fastapi_app


def get_dispatcher(fastapi_app: FastAPI) -> CapabilityDispatcher:
    dispatcher = getattr(fastapi_app.state, "dispatcher", None)
    if not isinstance(dispatcher, CapabilityDispatcher):
        raise RuntimeError("Capability dispatcher not initialised")
    return dispatcher


def _render(result: DispatchResult) -> JSONResponse:
    return JSONResponse(result.payload, headers={"X-Provider": result.provenance})


def _page(request: Request) -> int:
    return coerce_int(request.query_params.get("page"), default=1, minimum=1)


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(TransportFailure)
    async def transport_failure_handler(
        request: Request, exc: TransportFailure
    ) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": exc.code}, status_code=500)

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/ping")
    async def ping() -> dict[str, Any]:
        return get_dispatcher(fastapi_app).ping()

    @fastapi_app.get("/recent")
    async def recent(request: Request) -> JSONResponse:
        dispatcher = get_dispatcher(fastapi_app)
        return _render(await dispatcher.recent(_page(request)))

    @fastapi_app.get("/top-airing")
    @fastapi_app.get("/trending")
    async def top_airing(request: Request) -> JSONResponse:
        dispatcher = get_dispatcher(fastapi_app)
        return _render(await dispatcher.top_airing(_page(request)))

    @fastapi_app.get("/genres")
    async def genres() -> JSONResponse:
        return _render(await get_dispatcher(fastapi_app).genres())

    @fastapi_app.get("/search")
    async def search(q: str = "") -> JSONResponse:
        return _render(await get_dispatcher(fastapi_app).search(q))

    @fastapi_app.get("/anime/{anime_id}")
    async def anime_details(anime_id: str) -> JSONResponse:
        return _render(await get_dispatcher(fastapi_app).anime_details(anime_id))

    @fastapi_app.get("/anime/{anime_id}/episodes")
    async def anime_episodes(anime_id: str) -> JSONResponse:
        return _render(await get_dispatcher(fastapi_app).episodes(anime_id))

    @fastapi_app.get("/stream")
    async def stream(ep: str = "") -> JSONResponse:
        episode_id = ep.strip()
        if not episode_id:
            return JSONResponse({"error": "missing_ep"}, status_code=400)
        return _render(await get_dispatcher(fastapi_app).resolve_source(episode_id))

    @fastapi_app.get("/cache/stats")
    async def cache_stats() -> dict[str, Any]:
        return get_dispatcher(fastapi_app).cache.stats()


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
