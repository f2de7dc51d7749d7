"""Console entry package for the AniRatio catalog proxy."""

from __future__ import annotations

from app.main import app, create_app, get_dispatcher

__all__ = ["app", "create_app", "get_dispatcher"]
