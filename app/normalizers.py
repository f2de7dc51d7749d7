"""Map provider-native records onto the unified catalog schema.

Every function here is total: any input, including ``None`` or an object with
none of the expected fields, yields a valid model. Records coming from the
fallback provider always receive a ``mal-`` prefixed identifier so later
lookups can be routed straight back to it.
"""

from __future__ import annotations

from typing import Any, Iterable

from .models import AnimeDetails, CatalogItem, Episode, StreamSource
from .utils import as_mapping, coerce_int, first_value, nested_value

FALLBACK_ID_PREFIX = "mal-"

TITLE_KEYS = ("title", "name", "animeTitle")
NATIVE_ID_KEYS = ("id", "slug", "animeId", "anime_id")
NATIVE_COVER_KEYS = ("image", "poster", "image_url", "img", "imageUrl", "animeImg", "coverUrl")
NATIVE_TEXT_KEYS = ("description", "synopsis", "summary", "plot")
NATIVE_EPISODE_COUNT_KEYS = ("totalEpisodes", "episodeCount", "episode_count", "episodes")


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _names(values: Any) -> list[str]:
    """Flatten genre/tag collections that may hold strings or named records."""

    if isinstance(values, str):
        candidates: Iterable[Any] = values.split(",")
    elif isinstance(values, (list, tuple)):
        candidates = values
    else:
        return []
    names: list[str] = []
    for entry in candidates:
        name = genre_name(entry)
        if name and name not in names:
            names.append(name)
    return names


def genre_name(record: Any) -> str:
    if isinstance(record, str):
        return record.strip()
    return _text(first_value(record, "name", "title", "genre"))


def fallback_id(raw_id: Any) -> str:
    """Return the disambiguated id for a fallback-provider identifier."""

    text = _text(raw_id)
    if not text:
        return ""
    if text.startswith(FALLBACK_ID_PREFIX):
        return text
    return f"{FALLBACK_ID_PREFIX}{text}"


def strip_fallback_prefix(anime_id: str) -> str | None:
    """Return the upstream id behind a ``mal-`` id, or ``None`` if it is not one."""

    if not anime_id.startswith(FALLBACK_ID_PREFIX):
        return None
    upstream = anime_id[len(FALLBACK_ID_PREFIX):].strip()
    return upstream or None


def is_fallback_id(anime_id: str) -> bool:
    return strip_fallback_prefix(anime_id) is not None


# -- native provider ---------------------------------------------------------


def native_item(record: Any) -> CatalogItem:
    return CatalogItem(
        id=_text(first_value(record, *NATIVE_ID_KEYS)),
        title=_text(first_value(record, *TITLE_KEYS)) or "Unknown",
        cover_url=_text(first_value(record, *NATIVE_COVER_KEYS)),
        synopsis=_text(first_value(record, *NATIVE_TEXT_KEYS)),
        tags=_names(first_value(record, "genres", "tags", default=[])),
    )


def native_details(record: Any, *, anime_id: str = "") -> AnimeDetails:
    count_value = first_value(record, *NATIVE_EPISODE_COUNT_KEYS, default=None)
    if isinstance(count_value, (list, tuple)):
        episode_count = len(count_value)
    else:
        episode_count = coerce_int(count_value, minimum=0)
    if not episode_count:
        listed = first_value(record, "episodesList", "episodeList", default=[])
        if isinstance(listed, (list, tuple)):
            episode_count = len(listed)
    return AnimeDetails(
        id=_text(first_value(record, *NATIVE_ID_KEYS)) or anime_id,
        title=_text(first_value(record, *TITLE_KEYS)) or "Unknown",
        cover_url=_text(first_value(record, *NATIVE_COVER_KEYS)),
        description=_text(first_value(record, *NATIVE_TEXT_KEYS)),
        episode_count=episode_count,
        status=_text(first_value(record, "status")),
        genres=_names(first_value(record, "genres", "tags", default=[])),
    )


def native_episode(record: Any) -> Episode:
    number = first_value(record, "number", "episodeNum", "episode", "ep", default="")
    if not isinstance(number, (str, int)) or isinstance(number, bool):
        number = _text(number)
    title = _text(first_value(record, *TITLE_KEYS))
    if not title and number != "":
        title = f"Episode {number}"
    return Episode(
        id=_text(first_value(record, "id", "episodeId", "episode_id", "slug")),
        number=number,
        title=title,
    )


def native_source(record: Any) -> StreamSource:
    """Pick the first playable URL from a native stream-source record."""

    candidates: list[Any]
    if isinstance(record, (list, tuple)):
        candidates = list(record)
        container: Any = {}
    else:
        container = record
        nested = first_value(record, "sources", "streams", default=[])
        candidates = list(nested) if isinstance(nested, (list, tuple)) else []
        candidates.append(record)

    headers: dict[str, str] = {}
    raw_headers = first_value(container, "headers", default={})
    if isinstance(raw_headers, dict):
        headers = {str(key): _text(value) for key, value in raw_headers.items()}
    referer = _text(first_value(container, "referer", "Referer"))
    if referer:
        headers.setdefault("Referer", referer)

    for candidate in candidates:
        if isinstance(candidate, str):
            url = candidate.strip()
            if url:
                return StreamSource(url=url, headers=headers)
            continue
        url = _text(first_value(candidate, "url", "file", "src", "link"))
        if url:
            return StreamSource(
                url=url,
                quality=_text(first_value(candidate, "quality", "label")),
                headers=headers,
            )
    return StreamSource()


# -- fallback provider (Jikan-shaped) ----------------------------------------


def _fallback_cover(record: Any) -> str:
    return _text(
        nested_value(record, "images", "jpg", "image_url")
        or nested_value(record, "images", "webp", "image_url")
        or first_value(record, "image_url")
    )


def _fallback_genres(record: Any) -> list[str]:
    data = as_mapping(record)
    names: list[str] = []
    for key in ("genres", "themes", "demographics"):
        for name in _names(data.get(key)):
            if name not in names:
                names.append(name)
    return names


def fallback_item(record: Any) -> CatalogItem:
    return CatalogItem(
        id=fallback_id(first_value(record, "mal_id", "id")),
        title=_text(first_value(record, "title", "title_english", "name")) or "Unknown",
        cover_url=_fallback_cover(record),
        synopsis=_text(first_value(record, "synopsis")),
        tags=_fallback_genres(record),
    )


def fallback_details(record: Any, *, anime_id: str = "") -> AnimeDetails:
    return AnimeDetails(
        id=fallback_id(first_value(record, "mal_id", "id")) or anime_id,
        title=_text(first_value(record, "title", "title_english", "name")) or "Unknown",
        cover_url=_fallback_cover(record),
        description=_text(first_value(record, "synopsis", "background")),
        episode_count=coerce_int(first_value(record, "episodes", default=0), minimum=0),
        status=_text(first_value(record, "status")),
        genres=_fallback_genres(record),
    )


def fallback_episode(record: Any, *, anime_id: str) -> Episode:
    number = coerce_int(first_value(record, "mal_id", "episode", default=0), minimum=0)
    title = _text(first_value(record, "title", "title_romanji")) or f"Episode {number}"
    return Episode(id=f"{fallback_id(anime_id)}-{number}", number=number, title=title)
