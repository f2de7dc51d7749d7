"""Capability dispatcher: cache, then native provider, then fallback provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .. import normalizers
from ..cache import ResponseCache
from ..models import AnimeDetails, PingResponse, SearchResponse, StreamSource
from ..utils import build_cache_key, normalize_text
from .providers import (
    ProviderAdapter,
    ProviderEmpty,
    ProviderError,
    ProviderUnavailable,
    TransportFailure,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchResult:
    """Final payload for one capability call and where it came from."""

    payload: Any
    provenance: str

    @property
    def from_cache(self) -> bool:
        return self.provenance == "cache"


@dataclass(slots=True)
class _Attempt:
    adapter: ProviderAdapter
    call: Callable[[], Awaitable[Any]]
    normalize: Callable[[Any], Any]


def _is_empty(payload: Any) -> bool:
    if payload is None:
        return True
    if isinstance(payload, (list, tuple, dict)):
        return not payload
    return False


def _usable_details(details: AnimeDetails) -> dict[str, Any] | None:
    """Return the payload for ``details`` unless it carries no real data."""

    if (
        details.title == "Unknown"
        and not details.description
        and not details.cover_url
        and not details.episode_count
    ):
        return None
    return details.to_payload()


class CapabilityDispatcher:
    """Resolve each catalog capability through the provider chain.

    A request checks the cache (for cacheable capabilities), then asks the
    native provider, then the fallback provider, strictly in that order. When
    nothing yields data the caller still receives a well-formed empty or
    placeholder payload. Only unexpected failures escape, as
    :class:`TransportFailure`.
    """

    def __init__(
        self,
        native: ProviderAdapter,
        fallback: ProviderAdapter,
        cache: ResponseCache,
        *,
        search_ttl_seconds: float | None = None,
    ) -> None:
        self._native = native
        self._fallback = fallback
        self._cache = cache
        self._search_ttl = search_ttl_seconds

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def _resolve(
        self,
        capability: str,
        attempts: list[_Attempt],
        *,
        failure_code: str,
        empty: Callable[[], Any],
        cache_key: str | None = None,
        ttl: float | None = None,
        finalize: Callable[[Any, str], Any] | None = None,
    ) -> DispatchResult:
        if cache_key is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s", cache_key)
                return DispatchResult(cached, "cache")

        for attempt in attempts:
            provider = attempt.adapter.name
            try:
                raw = await attempt.call()
            except ProviderUnavailable as exc:
                logger.debug("Skipping %s for %s: %s", provider, capability, exc)
                continue
            except ProviderError as exc:
                logger.warning("%s provider errored for %s: %s", provider, capability, exc)
                continue
            except ProviderEmpty:
                logger.info("%s provider returned nothing for %s", provider, capability)
                continue
            except Exception as exc:
                logger.exception("Unexpected %s failure for %s", provider, capability)
                raise TransportFailure(failure_code, str(exc)) from exc

            try:
                payload = attempt.normalize(raw)
            except Exception:
                logger.exception(
                    "Could not normalise %s %s data; trying the next source",
                    provider,
                    capability,
                )
                continue
            if _is_empty(payload):
                logger.info("%s provider had no usable %s data", provider, capability)
                continue
            if finalize is not None:
                payload = finalize(payload, provider)
            if cache_key is not None:
                self._cache.set(cache_key, payload, ttl)
            return DispatchResult(payload, provider)

        return DispatchResult(empty(), "none")

    def _listing(
        self,
        capability: str,
        page: int,
        failure_code: str,
        native_call: Callable[[int], Awaitable[Any]],
        fallback_call: Callable[[int], Awaitable[Any]],
    ) -> Awaitable[DispatchResult]:
        page = max(1, int(page))
        attempts = [
            _Attempt(
                self._native,
                lambda: native_call(page),
                lambda raw: [normalizers.native_item(r).to_payload() for r in raw],
            ),
            _Attempt(
                self._fallback,
                lambda: fallback_call(page),
                lambda raw: [normalizers.fallback_item(r).to_payload() for r in raw],
            ),
        ]
        return self._resolve(
            capability,
            attempts,
            failure_code=failure_code,
            empty=list,
            cache_key=build_cache_key(capability, page=page),
        )

    async def recent(self, page: int = 1) -> DispatchResult:
        return await self._listing(
            "recent",
            page,
            "recent_failed",
            self._native.fetch_recent,
            self._fallback.fetch_recent,
        )

    async def top_airing(self, page: int = 1) -> DispatchResult:
        return await self._listing(
            "top_airing",
            page,
            "top_failed",
            self._native.fetch_top_airing,
            self._fallback.fetch_top_airing,
        )

    async def genres(self) -> DispatchResult:
        def names(raw: Any) -> list[str]:
            result: list[str] = []
            for record in raw:
                name = normalizers.genre_name(record)
                if name and name not in result:
                    result.append(name)
            return result

        attempts = [
            _Attempt(self._native, self._native.fetch_genres, names),
            _Attempt(self._fallback, self._fallback.fetch_genres, names),
        ]
        return await self._resolve(
            "genres",
            attempts,
            failure_code="genres_failed",
            empty=list,
            cache_key=build_cache_key("genres"),
        )

    async def search(self, query: str) -> DispatchResult:
        query = normalize_text(query)
        if not query:
            return DispatchResult(SearchResponse().to_payload(), "none")

        attempts = [
            _Attempt(
                self._native,
                lambda: self._native.search(query),
                lambda raw: [normalizers.native_item(r).to_payload() for r in raw],
            ),
            _Attempt(
                self._fallback,
                lambda: self._fallback.search(query),
                lambda raw: [normalizers.fallback_item(r).to_payload() for r in raw],
            ),
        ]
        return await self._resolve(
            "search",
            attempts,
            failure_code="search_failed",
            empty=lambda: SearchResponse().to_payload(),
            cache_key=build_cache_key("search", q=query),
            ttl=self._search_ttl,
            finalize=lambda results, provider: {"results": results, "provider": provider},
        )

    async def anime_details(self, anime_id: str) -> DispatchResult:
        anime_id = anime_id.strip()
        attempts = []
        if not normalizers.is_fallback_id(anime_id):
            attempts.append(
                _Attempt(
                    self._native,
                    lambda: self._native.fetch_details(anime_id),
                    lambda raw: _usable_details(
                        normalizers.native_details(raw, anime_id=anime_id)
                    ),
                )
            )
        attempts.append(
            _Attempt(
                self._fallback,
                lambda: self._fallback.fetch_details(anime_id),
                lambda raw: _usable_details(
                    normalizers.fallback_details(raw, anime_id=anime_id)
                ),
            )
        )
        return await self._resolve(
            "details",
            attempts,
            failure_code="anime_failed",
            empty=lambda: AnimeDetails.placeholder(anime_id).to_payload(),
            cache_key=build_cache_key("details", id=anime_id),
        )

    async def episodes(self, anime_id: str) -> DispatchResult:
        anime_id = anime_id.strip()
        attempts = []
        if not normalizers.is_fallback_id(anime_id):
            attempts.append(
                _Attempt(
                    self._native,
                    lambda: self._native.fetch_episodes(anime_id),
                    lambda raw: [normalizers.native_episode(r).to_payload() for r in raw],
                )
            )
        attempts.append(
            _Attempt(
                self._fallback,
                lambda: self._fallback.fetch_episodes(anime_id),
                lambda raw: [
                    normalizers.fallback_episode(r, anime_id=anime_id).to_payload()
                    for r in raw
                ],
            )
        )
        return await self._resolve(
            "episodes", attempts, failure_code="episodes_failed", empty=list
        )

    async def resolve_source(self, episode_id: str) -> DispatchResult:
        episode_id = episode_id.strip()

        def render(raw: Any) -> dict[str, Any] | None:
            source = normalizers.native_source(raw)
            return source.to_payload() if source.is_resolved() else None

        attempts = []
        if not normalizers.is_fallback_id(episode_id):
            attempts.append(
                _Attempt(self._native, lambda: self._native.resolve_source(episode_id), render)
            )
        attempts.append(
            _Attempt(self._fallback, lambda: self._fallback.resolve_source(episode_id), render)
        )
        return await self._resolve(
            "sources",
            attempts,
            failure_code="stream_failed",
            empty=lambda: StreamSource().to_payload(),
        )

    def ping(self) -> dict[str, Any]:
        provider = self._native.name if self._native.is_available() else self._fallback.name
        return PingResponse(provider=provider).to_payload()
