"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_NATIVE_PROVIDERS: tuple[str, ...] = (
    "gogoanime_api",
    "gogoanime:Gogoanime",
    "gogoanimeapi",
)
DEFAULT_FALLBACK_API_URLS: tuple[str, ...] = ("https://api.jikan.moe/v4",)


def _split_entries(value: object, *, setting: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        raw_values = [part.strip() for part in value.split(",")]
    elif isinstance(value, Iterable):
        raw_values = [str(part).strip() for part in value]
    else:
        raise TypeError(f"{setting} must be a string or iterable of strings")
    cleaned: list[str] = []
    for entry in raw_values:
        if entry and entry not in cleaned:
            cleaned.append(entry)
    return cleaned


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="AniRatio Proxy", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=10_000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    native_providers: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_NATIVE_PROVIDERS, alias="NATIVE_PROVIDERS"
    )
    native_timeout_seconds: float = Field(
        default=20.0, alias="NATIVE_TIMEOUT", gt=0, le=300
    )

    fallback_api_urls: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_FALLBACK_API_URLS, alias="FALLBACK_API_URLS"
    )
    fallback_page_size: int = Field(
        default=24, alias="FALLBACK_PAGE_SIZE", ge=1, le=25
    )
    user_agent: str = Field(default="AniRatioProxy/1.0", alias="USER_AGENT")
    http_timeout_seconds: float = Field(
        default=15.0, alias="HTTP_TIMEOUT", gt=0, le=120
    )

    cache_max_entries: int = Field(
        default=300, alias="CACHE_MAX_ENTRIES", ge=1, le=100_000
    )
    cache_ttl_seconds: int = Field(default=300, alias="CACHE_TTL", ge=1)
    search_cache_ttl_seconds: int = Field(
        default=180, alias="SEARCH_CACHE_TTL", ge=1
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("native_providers", mode="before")
    @classmethod
    def _parse_native_providers(cls, value: object) -> tuple[str, ...]:
        """Keep the configured import specs in priority order."""

        return tuple(_split_entries(value, setting="NATIVE_PROVIDERS"))

    @field_validator("fallback_api_urls", mode="before")
    @classmethod
    def _parse_fallback_urls(cls, value: object) -> tuple[str, ...]:
        """Normalise fallback base URLs, reverting to Jikan when blank."""

        urls = [
            entry.rstrip("/")
            for entry in _split_entries(value, setting="FALLBACK_API_URLS")
        ]
        for url in urls:
            if not url.startswith(("http://", "https://")):
                raise ValueError("FALLBACK_API_URLS entries must be http(s) URLs")
        if not urls:
            return DEFAULT_FALLBACK_API_URLS
        return tuple(urls)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        return level

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
