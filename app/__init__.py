"""AniRatio catalog proxy package.

Heavy modules are imported lazily so ``app.config`` and the core services can
be used without building the FastAPI application.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_LAZY_EXPORTS = {
    "app": "app.main",
    "create_app": "app.main",
    "CapabilityDispatcher": "app.services.dispatcher",
    "ResponseCache": "app.cache",
}

__all__ = sorted(_LAZY_EXPORTS)


def __getattr__(name: str) -> Any:
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module 'app' has no attribute {name}")
    return getattr(import_module(module_name), name)
