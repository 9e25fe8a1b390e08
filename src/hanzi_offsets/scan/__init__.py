"""Byte scanning and offset encoding for CJK Unified Ideographs."""

from .common import (
    HANZI_END,
    HANZI_START,
    CodePointRangeError,
    NoTargetCharactersError,
    OffsetTableError,
)
from .utf8 import DecodeResult, ResyncPolicy, decode_scalar, iter_scalars
from .collector import Collector, OffsetTable, collect, encode_offsets, expand_offsets

__all__ = [
    "HANZI_END",
    "HANZI_START",
    "CodePointRangeError",
    "Collector",
    "DecodeResult",
    "NoTargetCharactersError",
    "OffsetTable",
    "OffsetTableError",
    "ResyncPolicy",
    "collect",
    "decode_scalar",
    "encode_offsets",
    "expand_offsets",
    "iter_scalars",
]
