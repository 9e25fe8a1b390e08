"""Incremental UTF-8 scanning tuned for locating CJK ideographs in raw bytes.

The scanner keeps a rolling window of at most four bytes. After every byte
is appended, windows ending at that byte are tried at lengths
``1..len(window)``, shortest first, and the first length that decodes exactly
is emitted; older bytes left in front of the match are dropped. When the
window fills up without a match the scanner resynchronises according to
:class:`ResyncPolicy`. This is deliberately lossy and is not a strict UTF-8
validator: overlong forms and surrogates are accepted, and the default policy
discards a full window of four bytes at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Iterable, Iterator, Tuple, Union

from .common import MAX_CODE_POINT, ensure_bytes

logger = logging.getLogger(__name__)

WINDOW_CAPACITY = 4
DEFAULT_CHUNK_SIZE = 64 * 1024

# (lead mask, lead pattern, sequence length, payload mask)
_SEQUENCE_SHAPES: Tuple[Tuple[int, int, int, int], ...] = (
    (0x80, 0x00, 1, 0x7F),
    (0xE0, 0xC0, 2, 0x1F),
    (0xF0, 0xE0, 3, 0x0F),
    (0xF8, 0xF0, 4, 0x07),
)

ByteSource = Union[BinaryIO, bytes, bytearray, memoryview, Iterable[int]]


class ResyncPolicy(str, Enum):
    """How the scanner recovers once the window fills without a match."""

    CLEAR = "clear"
    SKIP = "skip"


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding one window position.

    Successful results carry the scalar value and the number of bytes it
    consumed. Failures have ``code_point=None`` and ``length=0``; when the
    scanner discards input while resynchronising, the discarded bytes are
    attached as ``dropped``.
    """

    code_point: int | None
    length: int
    dropped: bytes = b""

    @property
    def ok(self) -> bool:
        return self.code_point is not None


INVALID = DecodeResult(None, 0)


def sequence_length(lead: int) -> int:
    """Return the length announced by a lead byte, or ``0`` if it cannot lead."""

    for mask, pattern, length, _ in _SEQUENCE_SHAPES:
        if lead & mask == pattern:
            return length
    return 0


def decode_scalar(window: Union[bytes, bytearray, memoryview]) -> DecodeResult:
    """Decode one scalar value from the front of *window*.

    Pure function: only the bytes announced by the lead byte are inspected.
    Returns :data:`INVALID` for an unknown lead byte, a bad continuation byte,
    a window shorter than the announced sequence, or a value above U+10FFFF.
    """

    if not window:
        return INVALID
    lead = window[0]
    for mask, pattern, length, payload in _SEQUENCE_SHAPES:
        if lead & mask == pattern:
            break
    else:
        return INVALID
    if len(window) < length:
        return INVALID

    value = lead & payload
    for index in range(1, length):
        byte = window[index]
        if byte & 0xC0 != 0x80:
            return INVALID
        value = (value << 6) | (byte & 0x3F)
    if value > MAX_CODE_POINT:
        return INVALID
    return DecodeResult(value, length)


def _match_tail(buffer: bytearray) -> DecodeResult | None:
    for length in range(1, min(len(buffer), WINDOW_CAPACITY) + 1):
        result = decode_scalar(buffer[-length:])
        if result.ok and result.length == length:
            return result
    return None


def _drop(buffer: bytearray, count: int) -> DecodeResult:
    dropped = bytes(buffer[:count])
    del buffer[:count]
    logger.debug("Dropped undecodable bytes: %s", dropped.hex(" "))
    return DecodeResult(None, 0, dropped)


def _step(buffer: bytearray, resync: ResyncPolicy) -> Iterator[DecodeResult]:
    result = _match_tail(buffer)
    if result is not None:
        stale = len(buffer) - result.length
        if stale:
            yield _drop(buffer, stale)
        buffer.clear()
        yield result
        return
    if len(buffer) >= WINDOW_CAPACITY:
        yield _drop(buffer, len(buffer) if resync is ResyncPolicy.CLEAR else 1)


def _iter_chunks(stream: ByteSource, chunk_size: int) -> Iterator[bytes]:
    read = getattr(stream, "read", None)
    if read is None:
        yield ensure_bytes(stream)  # type: ignore[arg-type]
        return
    while True:
        chunk = read(chunk_size)
        if not chunk:
            return
        yield chunk


def iter_scalars(
    stream: ByteSource,
    *,
    resync: ResyncPolicy | str = ResyncPolicy.CLEAR,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[DecodeResult]:
    """Yield a :class:`DecodeResult` for every scalar or dropped run in *stream*.

    *stream* may be a binary file object, which is read sequentially in
    ``chunk_size`` blocks, or any bytes-like value. The generator is finite
    and not restartable. Errors raised by ``read`` propagate to the caller.
    Bytes left in the window at end of stream form a truncated sequence and
    are reported as a failure.
    """

    if chunk_size <= 0:
        raise ValueError("chunk_size must be a positive integer")
    policy = ResyncPolicy(resync)
    buffer = bytearray()

    for chunk in _iter_chunks(stream, chunk_size):
        for byte in chunk:
            buffer.append(byte)
            yield from _step(buffer, policy)

    if buffer:
        yield _drop(buffer, len(buffer))


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DecodeResult",
    "INVALID",
    "ResyncPolicy",
    "WINDOW_CAPACITY",
    "decode_scalar",
    "iter_scalars",
    "sequence_length",
]
