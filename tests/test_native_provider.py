"""Tests for the optional native provider adapter."""

from __future__ import annotations

import asyncio
import sys
from types import ModuleType, SimpleNamespace

import pytest

from app.services.native import NativeProviderAdapter, load_from_spec
from app.services.providers import ProviderEmpty, ProviderError, ProviderUnavailable


@pytest.fixture
def fake_library(monkeypatch):
    """Install a throwaway module exposing a client class."""

    module = ModuleType("fake_anime_lib")

    class Client:
        instances = 0

        def __init__(self) -> None:
            Client.instances += 1

        def recent(self, page):
            return [{"id": f"recent-{page}", "title": "Recent"}]

    module.Client = Client
    monkeypatch.setitem(sys.modules, "fake_anime_lib", module)
    return module


def test_load_from_spec_constructs_factories(fake_library) -> None:
    source = load_from_spec("fake_anime_lib:Client")

    assert isinstance(source, fake_library.Client)
    assert load_from_spec("fake_anime_lib") is fake_library


def test_missing_library_reports_unavailable() -> None:
    adapter = NativeProviderAdapter.from_specs(["definitely_not_installed_lib"])

    assert adapter.is_available() is False
    assert adapter.source_label is None


@pytest.mark.anyio("asyncio")
async def test_unavailable_adapter_raises_for_every_capability() -> None:
    adapter = NativeProviderAdapter.from_specs([])

    with pytest.raises(ProviderUnavailable):
        await adapter.fetch_recent(1)
    with pytest.raises(ProviderUnavailable):
        await adapter.search("naruto")
    with pytest.raises(ProviderUnavailable):
        await adapter.resolve_source("naruto-episode-1")


def test_strategies_are_tried_in_order_and_loaded_once(fake_library) -> None:
    """The first loadable strategy wins and is never probed again."""

    attempts: list[str] = []

    def broken():
        attempts.append("broken")
        raise ImportError("no module named gogo")

    def working():
        attempts.append("working")
        return fake_library.Client()

    def never():
        attempts.append("never")
        return object()

    adapter = NativeProviderAdapter([("broken", broken), ("working", working), ("never", never)])

    assert adapter.is_available() is True
    assert adapter.is_available() is True
    assert adapter.supports("recent") is True
    assert adapter.source_label == "working"
    assert attempts == ["broken", "working"]
    assert fake_library.Client.instances == 1


def test_failed_load_is_memoised() -> None:
    calls = 0

    def broken():
        nonlocal calls
        calls += 1
        raise RuntimeError("boom")

    adapter = NativeProviderAdapter([("broken", broken)])

    assert adapter.is_available() is False
    assert adapter.is_available() is False
    assert calls == 1


@pytest.mark.anyio("asyncio")
async def test_secondary_alias_is_used_when_primary_missing() -> None:
    """A library exposing only ``fetchRecentReleases`` still serves recent."""

    calls: list[int] = []

    async def fetch_recent_releases(page):
        calls.append(page)
        return {"results": [{"animeId": "one-piece"}]}

    adapter = NativeProviderAdapter.from_source(
        SimpleNamespace(fetchRecentReleases=fetch_recent_releases)
    )

    assert await adapter.fetch_recent(2) == [{"animeId": "one-piece"}]
    assert calls == [2]
    assert adapter.supports("top_airing") is False


@pytest.mark.anyio("asyncio")
async def test_primary_alias_wins_over_secondary() -> None:
    source = SimpleNamespace(
        topAiring=lambda page: [{"id": "primary"}],
        trending=lambda page: [{"id": "secondary"}],
    )
    adapter = NativeProviderAdapter.from_source(source)

    assert await adapter.fetch_top_airing(1) == [{"id": "primary"}]


@pytest.mark.anyio("asyncio")
async def test_raising_call_becomes_provider_error(caplog) -> None:
    def search(query):
        raise ConnectionError("gogo is down")

    adapter = NativeProviderAdapter.from_source(SimpleNamespace(search=search))

    with pytest.raises(ProviderError) as excinfo:
        await adapter.search("naruto")

    assert isinstance(excinfo.value, ProviderEmpty)
    assert "search" in caplog.text
    assert "gogo is down" in caplog.text


@pytest.mark.anyio("asyncio")
async def test_slow_call_times_out_as_provider_error() -> None:
    async def search(query):
        await asyncio.sleep(5)
        return [{"id": "late"}]

    adapter = NativeProviderAdapter.from_source(SimpleNamespace(search=search), timeout=0.01)

    with pytest.raises(ProviderError):
        await adapter.search("naruto")


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize("result", [[], None, {"results": []}, {"items": [1]}, "text"])
async def test_unusable_results_are_empty(result) -> None:
    adapter = NativeProviderAdapter.from_source(SimpleNamespace(recent=lambda page: result))

    with pytest.raises(ProviderEmpty):
        await adapter.fetch_recent(1)


@pytest.mark.anyio("asyncio")
async def test_results_attribute_is_unwrapped() -> None:
    payload = SimpleNamespace(results=[{"id": "naruto"}], hasNextPage=True)
    adapter = NativeProviderAdapter.from_source(SimpleNamespace(search=lambda q: payload))

    assert await adapter.search("naruto") == [{"id": "naruto"}]


@pytest.mark.anyio("asyncio")
async def test_single_record_capabilities() -> None:
    source = SimpleNamespace(
        fetchAnimeInfo=lambda anime_id: {"animeTitle": anime_id},
        fetchEpisodeSources=lambda episode_id: {},
        fetchEpisodes=lambda anime_id: {"episodes": [{"id": f"{anime_id}-1"}]},
    )
    adapter = NativeProviderAdapter.from_source(source)

    assert await adapter.fetch_details("naruto") == {"animeTitle": "naruto"}
    assert await adapter.fetch_episodes("naruto") == [{"id": "naruto-1"}]
    with pytest.raises(ProviderEmpty):
        await adapter.resolve_source("naruto-episode-1")
