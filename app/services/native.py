"""Adapter around an optionally-installed, in-process anime catalog library."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from importlib import import_module
from typing import Any, Callable, Iterable, Mapping, Sequence

from .providers import (
    ProviderAdapter,
    ProviderEmpty,
    ProviderError,
    ProviderUnavailable,
    RawRecord,
    RawRecords,
)

logger = logging.getLogger(__name__)

# Method names differ between library releases; earlier entries win.
CAPABILITY_ALIASES: dict[str, tuple[str, ...]] = {
    "recent": ("recent", "fetchRecentReleases", "fetch_recent_releases", "recent_releases"),
    "top_airing": ("topAiring", "trending", "top_airing", "fetch_top_airing"),
    "genres": ("genres", "fetchGenres", "genre_list"),
    "search": ("search", "searchAnime", "search_anime"),
    "details": ("animeDetails", "fetchAnimeInfo", "anime_details", "fetch_anime_info"),
    "episodes": ("episodes", "fetchEpisodes", "episode_list", "fetch_episodes"),
    "sources": ("sources", "fetchEpisodeSources", "episode_sources", "get_sources"),
}

SourceLoader = Callable[[], Any]


def load_from_spec(spec: str) -> Any:
    """Build a capability source from ``module`` or ``module:factory``."""

    module_name, _, attribute = spec.partition(":")
    module = import_module(module_name.strip())
    if not attribute.strip():
        return module
    target = getattr(module, attribute.strip())
    return target() if callable(target) else target


class NativeProviderAdapter(ProviderAdapter):
    """Probe an optional library once and expose it through the capability contract.

    Construction strategies are tried in order the first time the adapter is
    used; the winner (or the absence of one) is kept for the life of the
    process. Errors raised by the library never leave this class: they are
    logged and reported as :class:`ProviderError`.
    """

    name = "native"

    def __init__(
        self,
        loaders: Sequence[tuple[str, SourceLoader]] = (),
        *,
        timeout: float | None = 20.0,
        aliases: Mapping[str, tuple[str, ...]] | None = None,
    ) -> None:
        self._loaders = tuple(loaders)
        self._timeout = timeout
        self._aliases = dict(aliases or CAPABILITY_ALIASES)
        self._lock = threading.Lock()
        self._loaded = False
        self._source: Any = None
        self._source_label: str | None = None
        self._bindings: dict[str, Callable[..., Any]] = {}

    @classmethod
    def from_specs(
        cls, specs: Iterable[str], *, timeout: float | None = 20.0
    ) -> "NativeProviderAdapter":
        loaders = [(spec, lambda spec=spec: load_from_spec(spec)) for spec in specs]
        return cls(loaders, timeout=timeout)

    @classmethod
    def from_source(
        cls, source: Any, *, label: str = "injected", timeout: float | None = 20.0
    ) -> "NativeProviderAdapter":
        """Wrap an already constructed source object."""

        return cls([(label, lambda: source)], timeout=timeout)

    @property
    def source_label(self) -> str | None:
        self._ensure_loaded()
        return self._source_label

    def is_available(self) -> bool:
        self._ensure_loaded()
        return self._source is not None

    def supports(self, capability: str) -> bool:
        self._ensure_loaded()
        return capability in self._bindings

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        with self._lock:
            if self._loaded:
                return
            for label, loader in self._loaders:
                try:
                    source = loader()
                except Exception as exc:
                    logger.info("Native provider %s could not be loaded: %s", label, exc)
                    continue
                if source is None:
                    continue
                self._source = source
                self._source_label = label
                self._bindings = self._resolve_bindings(source)
                logger.info(
                    "Loaded native provider %s with capabilities: %s",
                    label,
                    ", ".join(sorted(self._bindings)) or "none",
                )
                break
            else:
                logger.info("No native provider available; using fallback only")
            self._loaded = True

    def _resolve_bindings(self, source: Any) -> dict[str, Callable[..., Any]]:
        bindings: dict[str, Callable[..., Any]] = {}
        for capability, aliases in self._aliases.items():
            for alias in aliases:
                candidate = getattr(source, alias, None)
                if callable(candidate):
                    bindings[capability] = candidate
                    break
        return bindings

    def _binding(self, capability: str) -> Callable[..., Any]:
        self._ensure_loaded()
        if self._source is None:
            raise ProviderUnavailable(self.name, capability, "not loaded")
        binding = self._bindings.get(capability)
        if binding is None:
            raise ProviderUnavailable(self.name, capability, "not supported")
        return binding

    async def _invoke(self, func: Callable[..., Any], *args: Any) -> Any:
        if inspect.iscoroutinefunction(func):
            result = await func(*args)
        else:
            result = await asyncio.to_thread(func, *args)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _call(self, capability: str, *args: Any) -> Any:
        func = self._binding(capability)
        try:
            if self._timeout is None:
                return await self._invoke(func, *args)
            return await asyncio.wait_for(self._invoke(func, *args), timeout=self._timeout)
        except Exception as exc:
            logger.warning("Native provider %s failed: %r", capability, exc)
            raise ProviderError(self.name, capability, repr(exc)) from exc

    def _as_sequence(self, capability: str, result: Any) -> RawRecords:
        if isinstance(result, (list, tuple)):
            items = list(result)
        else:
            if isinstance(result, Mapping):
                nested = result.get("results")
            else:
                nested = getattr(result, "results", None)
            items = list(nested) if isinstance(nested, (list, tuple)) else []
        if not items:
            raise ProviderEmpty(self.name, capability)
        return items

    def _as_record(self, capability: str, result: Any) -> RawRecord:
        if result is None or (isinstance(result, (Mapping, list, tuple)) and not result):
            raise ProviderEmpty(self.name, capability)
        return result

    async def fetch_recent(self, page: int) -> RawRecords:
        return self._as_sequence("recent", await self._call("recent", page))

    async def fetch_top_airing(self, page: int) -> RawRecords:
        return self._as_sequence("top_airing", await self._call("top_airing", page))

    async def fetch_genres(self) -> RawRecords:
        return self._as_sequence("genres", await self._call("genres"))

    async def search(self, query: str) -> RawRecords:
        return self._as_sequence("search", await self._call("search", query))

    async def fetch_details(self, anime_id: str) -> RawRecord:
        return self._as_record("details", await self._call("details", anime_id))

    async def fetch_episodes(self, anime_id: str) -> RawRecords:
        result = await self._call("episodes", anime_id)
        if not isinstance(result, (list, tuple)):
            if isinstance(result, Mapping):
                nested = result.get("episodes")
            else:
                nested = getattr(result, "episodes", None)
            if isinstance(nested, (list, tuple)):
                result = nested
        return self._as_sequence("episodes", result)

    async def resolve_source(self, episode_id: str) -> RawRecord:
        return self._as_record("sources", await self._call("sources", episode_id))
