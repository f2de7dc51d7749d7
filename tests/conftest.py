"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest


# Ensure the application package is importable when running tests without an
# editable install. ``app`` sits at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _jikan_anime(mal_id: int, title: str = "Cowboy Bebop", **extra: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "mal_id": mal_id,
        "title": title,
        "images": {
            "jpg": {"image_url": f"https://cdn.myanimelist.net/images/anime/{mal_id}.jpg"},
            "webp": {"image_url": f"https://cdn.myanimelist.net/images/anime/{mal_id}.webp"},
        },
        "synopsis": f"Synopsis for {title}.",
        "genres": [{"mal_id": 1, "name": "Action"}],
        "themes": [{"mal_id": 50, "name": "Space"}],
    }
    record.update(extra)
    return record


@pytest.fixture
def jikan_anime():
    """Factory for trimmed Jikan v4 anime records."""

    return _jikan_anime
