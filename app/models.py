"""Pydantic models describing the unified catalog payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Provenance = Literal["native", "fallback"]


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready representation sent to clients."""

        return self.model_dump(mode="json", by_alias=True)


class CatalogItem(_Payload):
    """A single anime entry in a listing or search result."""

    id: str
    title: str = "Unknown"
    cover_url: str = Field(default="", alias="coverUrl")
    synopsis: str = ""
    tags: list[str] = Field(default_factory=list)


class AnimeDetails(_Payload):
    """Detail view for one anime."""

    id: str = ""
    title: str = "Unknown"
    cover_url: str = Field(default="", alias="coverUrl")
    description: str = ""
    episode_count: int = Field(default=0, ge=0, alias="episodeCount")
    status: str = ""
    genres: list[str] = Field(default_factory=list)

    @classmethod
    def placeholder(cls, anime_id: str = "") -> "AnimeDetails":
        """Return the empty record served when no provider knows ``anime_id``."""

        return cls(id=anime_id)


class Episode(_Payload):
    id: str
    number: str | int = ""
    title: str = ""


class StreamSource(_Payload):
    """Resolved playback location for an episode; empty ``url`` means unresolved."""

    url: str = ""
    quality: str = ""
    headers: dict[str, str] = Field(default_factory=dict)

    def is_resolved(self) -> bool:
        return bool(self.url)


class SearchResponse(_Payload):
    results: list[CatalogItem] = Field(default_factory=list)
    provider: Provenance = "fallback"


class PingResponse(_Payload):
    ok: bool = True
    provider: str
    time: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
