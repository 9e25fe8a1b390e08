"""Collect CJK Unified Ideographs from decoded scalars and delta-encode them."""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Sequence

_NUMPY_MISSING_MSG = (
    "The numpy package is required to build offset tables. Install it with 'pip install numpy'."
)

if importlib.util.find_spec("numpy") is None:  # pragma: no cover - deterministic import guard
    raise ModuleNotFoundError(_NUMPY_MISSING_MSG)
import numpy as np

from .common import (
    HANZI_SPAN,
    HANZI_START,
    INT16_MAX,
    INT16_MIN,
    CodePointRangeError,
    NoTargetCharactersError,
    format_code_point,
    is_hanzi,
)
from .utf8 import DEFAULT_CHUNK_SIZE, ByteSource, DecodeResult, ResyncPolicy, iter_scalars

logger = logging.getLogger(__name__)


class PresenceSet:
    """Fixed-size presence table indexed by ``code_point - 0x4E00``."""

    def __init__(self) -> None:
        self._present = np.zeros(HANZI_SPAN, dtype=np.bool_)

    def _index(self, code_point: int) -> int:
        index = int(code_point) - HANZI_START
        if not 0 <= index < HANZI_SPAN:
            raise CodePointRangeError(
                f"{format_code_point(int(code_point))} is outside the CJK Unified Ideographs block"
            )
        return index

    def add(self, code_point: int) -> None:
        self._present[self._index(code_point)] = True

    def __contains__(self, code_point: object) -> bool:
        if not isinstance(code_point, (int, np.integer)) or not is_hanzi(int(code_point)):
            return False
        return bool(self._present[int(code_point) - HANZI_START])

    def __len__(self) -> int:
        return int(np.count_nonzero(self._present))

    def code_points(self) -> np.ndarray:
        """Return the present code points in ascending order."""

        return np.flatnonzero(self._present).astype(np.int64) + HANZI_START


@dataclass
class ScanStats:
    """Counters accumulated over a single pass."""

    total_chars: int = 0
    detected: int = 0
    invalid_bytes: int = 0


@dataclass(frozen=True)
class OffsetTable:
    """Delta-encoded table of the ideographs observed in a stream."""

    offsets: np.ndarray
    code_points: np.ndarray
    stats: ScanStats
    anchor: int = HANZI_START
    anchored: bool = False
    overflow_count: int = 0

    @property
    def count(self) -> int:
        return int(self.code_points.size)

    @property
    def first(self) -> int:
        return int(self.code_points[0])

    @property
    def last(self) -> int:
        return int(self.code_points[-1])

    @property
    def base(self) -> int:
        """Code point the cumulative sum of :attr:`offsets` starts from."""

        return self.anchor if self.anchored else self.first

    def to_dict(self) -> Dict[str, object]:
        return {
            "anchor": self.anchor,
            "anchored": self.anchored,
            "count": self.count,
            "first": self.first,
            "last": self.last,
            "offsets": [int(value) for value in self.offsets],
            "overflow_count": self.overflow_count,
            "total_chars": self.stats.total_chars,
            "detected": self.stats.detected,
            "invalid_bytes": self.stats.invalid_bytes,
        }


def encode_offsets(
    code_points: Sequence[int] | np.ndarray,
    *,
    anchor: int = HANZI_START,
    anchored: bool = False,
) -> tuple[np.ndarray, int]:
    """Return ``(offsets, overflow_count)`` for a strictly increasing sequence.

    Element 0 is ``0``, or ``code_points[0] - anchor`` when *anchored* is set.
    Every later element is the difference from its predecessor. Differences
    that do not fit in a signed 16-bit integer are logged and stored wrapped.
    """

    values = np.asarray(code_points, dtype=np.int64)
    if values.ndim != 1:
        raise ValueError("code_points must be one-dimensional")
    if values.size == 0:
        return np.zeros(0, dtype=np.int16), 0
    if values.size > 1 and not np.all(values[1:] > values[:-1]):
        raise ValueError("code_points must be strictly increasing")

    deltas = np.empty(values.size, dtype=np.int64)
    deltas[0] = values[0] - anchor if anchored else 0
    deltas[1:] = np.diff(values)

    overflow = (deltas < INT16_MIN) | (deltas > INT16_MAX)
    for index in np.flatnonzero(overflow):
        logger.warning(
            "Offset %d at index %d (%s) does not fit in a signed 16-bit integer",
            int(deltas[index]),
            int(index),
            format_code_point(int(values[index])),
        )
    return deltas.astype(np.int16), int(np.count_nonzero(overflow))


def expand_offsets(offsets: Iterable[int], base: int) -> list[int]:
    """Rebuild code points by summing *offsets* cumulatively from *base*."""

    code_points = []
    current = base
    for delta in offsets:
        current += int(delta)
        code_points.append(current)
    return code_points


class Collector:
    """Accumulate scan statistics and ideograph presence during one pass."""

    def __init__(self) -> None:
        self.presence = PresenceSet()
        self.stats = ScanStats()

    def feed(self, result: DecodeResult) -> None:
        if not result.ok:
            self.stats.invalid_bytes += len(result.dropped)
            return
        self.stats.total_chars += 1
        if is_hanzi(result.code_point):
            self.presence.add(result.code_point)
            self.stats.detected += 1

    def consume(self, results: Iterable[DecodeResult]) -> "Collector":
        for result in results:
            self.feed(result)
        return self

    def build(self, *, anchored: bool = False) -> OffsetTable:
        """Freeze the collected state into an :class:`OffsetTable`."""

        if self.stats.detected == 0:
            raise NoTargetCharactersError("No CJK Unified Ideographs found in input")
        code_points = self.presence.code_points()
        offsets, overflow_count = encode_offsets(code_points, anchored=anchored)
        return OffsetTable(
            offsets=offsets,
            code_points=code_points,
            stats=ScanStats(**vars(self.stats)),
            anchored=anchored,
            overflow_count=overflow_count,
        )


def collect(
    stream: ByteSource,
    *,
    resync: ResyncPolicy | str = ResyncPolicy.CLEAR,
    anchored: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> OffsetTable:
    """Scan *stream* once and return its offset table."""

    collector = Collector()
    collector.consume(iter_scalars(stream, resync=resync, chunk_size=chunk_size))
    logger.info(
        "Processed %d characters, %d ideographs (%d unique), %d invalid bytes",
        collector.stats.total_chars,
        collector.stats.detected,
        len(collector.presence),
        collector.stats.invalid_bytes,
    )
    return collector.build(anchored=anchored)


__all__ = [
    "Collector",
    "OffsetTable",
    "PresenceSet",
    "ScanStats",
    "collect",
    "encode_offsets",
    "expand_offsets",
]
