"""Extract CJK ideograph glyph ranges from text as delta-encoded tables."""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import TYPE_CHECKING

__version__ = "0.1.0"

__all__ = ["scan", "tools"]


def __getattr__(name: str) -> ModuleType:
    """Lazily import subpackages so the CLI only pays for what it uses."""

    if name in __all__:
        module = importlib.import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:  # pragma: no cover - imported for static analyzers
    from . import scan, tools  # noqa: F401
