"""Capability contract shared by every catalog provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ProviderSignal(Exception):
    """Base class for the control-flow signals raised by provider adapters."""

    def __init__(self, provider: str, capability: str, detail: str = "") -> None:
        self.provider = provider
        self.capability = capability
        self.detail = detail
        message = f"{provider} {capability}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProviderUnavailable(ProviderSignal):
    """The provider is not loaded or cannot serve the capability."""


class ProviderEmpty(ProviderSignal):
    """The call succeeded but produced no usable data."""


class ProviderError(ProviderEmpty):
    """The call raised; treated exactly like an empty result by callers."""


class TransportFailure(Exception):
    """An unexpected failure of the proxy's own outbound call."""

    def __init__(self, code: str, detail: str = "") -> None:
        self.code = code
        self.detail = detail
        super().__init__(f"{code}: {detail}" if detail else code)


RawRecord = Any
RawRecords = list[Any]


class ProviderAdapter(ABC):
    """Async capability surface implemented by the native and fallback providers.

    Sequence capabilities return a non-empty list of raw records, single-record
    capabilities return one raw record. Anything else is reported by raising a
    :class:`ProviderSignal` subclass.
    """

    name: str = "provider"

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` when the provider can serve requests at all."""

    @abstractmethod
    async def fetch_recent(self, page: int) -> RawRecords:
        ...

    @abstractmethod
    async def fetch_top_airing(self, page: int) -> RawRecords:
        ...

    @abstractmethod
    async def fetch_genres(self) -> RawRecords:
        ...

    @abstractmethod
    async def search(self, query: str) -> RawRecords:
        ...

    @abstractmethod
    async def fetch_details(self, anime_id: str) -> RawRecord:
        ...

    @abstractmethod
    async def fetch_episodes(self, anime_id: str) -> RawRecords:
        ...

    @abstractmethod
    async def resolve_source(self, episode_id: str) -> RawRecord:
        ...
