"""Adapter for the remote Jikan-compatible fallback catalog API."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import httpx

from ..normalizers import strip_fallback_prefix
from .providers import (
    ProviderAdapter,
    ProviderEmpty,
    ProviderError,
    ProviderUnavailable,
    RawRecord,
    RawRecords,
)

logger = logging.getLogger(__name__)

BODY_KEYS = ("data", "results")


class FallbackProviderAdapter(ProviderAdapter):
    """Query one or more Jikan-style base URLs in order until one answers."""

    name = "fallback"

    _RECENT_PATH = "/seasons/now"
    _TOP_AIRING_PATH = "/top/anime"
    _GENRES_PATH = "/genres/anime"
    _SEARCH_PATH = "/anime"
    _DETAILS_PATH = "/anime/{id}"
    _EPISODES_PATH = "/anime/{id}/episodes"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_urls: Sequence[str],
        *,
        user_agent: str = "AniRatioProxy/1.0",
        page_size: int = 24,
    ) -> None:
        self._client = http_client
        self._base_urls = tuple(url.rstrip("/") for url in base_urls if url)
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._page_size = page_size

    @property
    def base_urls(self) -> tuple[str, ...]:
        return self._base_urls

    def is_available(self) -> bool:
        return bool(self._base_urls)

    async def _get(
        self, capability: str, path: str, params: Mapping[str, Any] | None = None
    ) -> Any:
        """Return the decoded body from the first base URL with a 2xx status."""

        if not self._base_urls:
            raise ProviderUnavailable(self.name, capability, "no base URL configured")

        for base_url in self._base_urls:
            url = f"{base_url}{path}"
            try:
                response = await self._client.get(
                    url, params=dict(params or {}), headers=self._headers
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.warning(
                    "Fallback %s failed via %s: HTTP %s",
                    capability,
                    base_url,
                    exc.response.status_code,
                )
                continue
            except httpx.HTTPError as exc:
                logger.warning(
                    "Fallback %s failed via %s: %s", capability, base_url, exc
                )
                continue

            try:
                return response.json()
            except ValueError:
                logger.warning(
                    "Fallback %s returned a non-JSON body via %s", capability, base_url
                )
                raise ProviderEmpty(self.name, capability, "non-JSON body") from None

        raise ProviderError(self.name, capability, "no base URL responded")

    @staticmethod
    def extract_payload(body: Any) -> Any:
        """Return ``data``, else ``results``, else the body itself."""

        if isinstance(body, Mapping):
            for key in BODY_KEYS:
                candidate = body.get(key)
                if candidate is not None:
                    return candidate
        return body

    def _as_items(self, capability: str, body: Any) -> RawRecords:
        payload = self.extract_payload(body)
        if not isinstance(payload, list) or not payload:
            raise ProviderEmpty(self.name, capability)
        return payload

    def _upstream_id(self, capability: str, anime_id: str) -> str:
        upstream = strip_fallback_prefix(anime_id)
        if upstream is None and anime_id.strip().isdigit():
            upstream = anime_id.strip()
        if upstream is None:
            raise ProviderUnavailable(self.name, capability, f"unknown id {anime_id!r}")
        return upstream

    async def fetch_recent(self, page: int) -> RawRecords:
        body = await self._get(
            "recent", self._RECENT_PATH, {"limit": self._page_size, "page": page}
        )
        return self._as_items("recent", body)

    async def fetch_top_airing(self, page: int) -> RawRecords:
        body = await self._get(
            "top_airing",
            self._TOP_AIRING_PATH,
            {"filter": "airing", "limit": self._page_size, "page": page},
        )
        return self._as_items("top_airing", body)

    async def fetch_genres(self) -> RawRecords:
        return self._as_items("genres", await self._get("genres", self._GENRES_PATH))

    async def search(self, query: str) -> RawRecords:
        body = await self._get(
            "search", self._SEARCH_PATH, {"q": query, "limit": self._page_size}
        )
        return self._as_items("search", body)

    async def fetch_details(self, anime_id: str) -> RawRecord:
        upstream = self._upstream_id("details", anime_id)
        body = await self._get("details", self._DETAILS_PATH.format(id=upstream))
        payload = self.extract_payload(body)
        if not isinstance(payload, Mapping) or not payload:
            raise ProviderEmpty(self.name, "details")
        return payload

    async def fetch_episodes(self, anime_id: str) -> RawRecords:
        upstream = self._upstream_id("episodes", anime_id)
        body = await self._get("episodes", self._EPISODES_PATH.format(id=upstream))
        return self._as_items("episodes", body)

    async def resolve_source(self, episode_id: str) -> RawRecord:
        raise ProviderUnavailable(self.name, "sources", "stream sources are not offered")
