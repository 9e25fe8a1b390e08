"""Shared constants and helpers used across the scanner and tooling."""

from __future__ import annotations

from typing import Iterable, Union

HANZI_START = 0x4E00
HANZI_END = 0x9FFF
HANZI_SPAN = HANZI_END - HANZI_START + 1
MAX_CODE_POINT = 0x10FFFF
INT16_MIN = -32768
INT16_MAX = 32767


class OffsetTableError(RuntimeError):
    """Base class for failures raised while building an offset table."""


class NoTargetCharactersError(OffsetTableError):
    """Raised when a stream contains no CJK Unified Ideographs."""


class CodePointRangeError(OffsetTableError, ValueError):
    """Raised when a code point falls outside the CJK Unified Ideographs block."""


def is_hanzi(code_point: int) -> bool:
    """Return ``True`` if *code_point* lies in U+4E00..U+9FFF."""

    return HANZI_START <= code_point <= HANZI_END


def format_code_point(code_point: int) -> str:
    return f"U+{code_point:04X}"


def ensure_bytes(value: Union[str, bytes, bytearray, memoryview, Iterable[int]]) -> bytes:
    """Coerce the provided value into a ``bytes`` instance.

    Iterables of integers must hold values in ``range(256)``; anything else
    raises ``ValueError``.
    """

    if isinstance(value, bytes):
        return value
    if isinstance(value, bytearray):
        return bytes(value)
    if isinstance(value, memoryview):
        return bytes(value.tobytes())
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


__all__ = [
    "CodePointRangeError",
    "HANZI_END",
    "HANZI_SPAN",
    "HANZI_START",
    "INT16_MAX",
    "INT16_MIN",
    "MAX_CODE_POINT",
    "NoTargetCharactersError",
    "OffsetTableError",
    "ensure_bytes",
    "format_code_point",
    "is_hanzi",
]
