from __future__ import annotations

import logging
import random
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import numpy as np
import pytest

from hanzi_offsets.scan import collector as collector_module
from hanzi_offsets.scan.collector import (
    Collector,
    PresenceSet,
    collect,
    encode_offsets,
    expand_offsets,
)
from hanzi_offsets.scan.common import (
    HANZI_END,
    HANZI_START,
    CodePointRangeError,
    NoTargetCharactersError,
)
from hanzi_offsets.scan.utf8 import DecodeResult, iter_scalars

SAMPLE = "中文AB中".encode("utf-8")


def test_collect_builds_expected_table_for_mixed_text() -> None:
    table = collect(SAMPLE)

    assert table.stats.total_chars == 5
    assert table.stats.detected == 3
    assert table.count == 2
    assert table.code_points.tolist() == [0x4E2D, 0x6587]
    assert table.offsets.tolist() == [0, 6746]
    assert table.offsets.dtype == np.int16
    assert (table.first, table.last) == (0x4E2D, 0x6587)


def test_anchored_table_rebuilds_from_block_start() -> None:
    table = collect(SAMPLE, anchored=True)

    assert table.offsets.tolist() == [0x2D, 6746]
    assert table.base == HANZI_START
    assert expand_offsets(table.offsets, HANZI_START) == table.code_points.tolist()


def test_default_table_rebuilds_from_first_code_point() -> None:
    table = collect(SAMPLE)

    assert table.base == 0x4E2D
    assert expand_offsets(table.offsets, table.base) == table.code_points.tolist()


def test_collect_reports_empty_result_for_ascii() -> None:
    with pytest.raises(NoTargetCharactersError):
        collect(b"plain ascii text\n")


def test_random_text_gives_sorted_unique_offsets() -> None:
    rng = random.Random(0)
    chars = [chr(rng.randint(HANZI_START, HANZI_END)) for _ in range(500)]
    text = "".join(ch + rng.choice(" ,.abc\n") for ch in chars)

    table = collect(text.encode("utf-8"))

    expected = sorted({ord(ch) for ch in chars})
    assert table.code_points.tolist() == expected
    assert table.offsets[0] == 0
    assert np.all(np.diff(table.code_points) > 0)
    assert table.stats.detected == len(chars)
    assert expand_offsets(table.offsets, table.base) == expected


def test_total_chars_counts_every_decoded_scalar() -> None:
    text = "abc中é😀"
    stats = Collector().consume(iter_scalars(text.encode("utf-8"))).stats

    assert stats.total_chars == len(text)
    assert stats.detected == 1
    assert stats.invalid_bytes == 0


def test_malformed_bytes_are_never_counted() -> None:
    stats = Collector().consume(iter_scalars(bytes(range(256)))).stats

    assert stats.total_chars == 128
    assert stats.invalid_bytes == 128
    assert stats.detected == 0


def test_feed_counts_dropped_bytes() -> None:
    collector = Collector()

    collector.feed(DecodeResult(None, 0, b"\x80\x81"))
    collector.feed(DecodeResult(0x9FFF, 3))

    assert collector.stats.invalid_bytes == 2
    assert collector.stats.total_chars == 1
    assert 0x9FFF in collector.presence


def test_presence_set_checks_bounds() -> None:
    presence = PresenceSet()
    presence.add(HANZI_START)
    presence.add(HANZI_END)
    presence.add(HANZI_END)

    assert len(presence) == 2
    assert HANZI_START in presence
    assert 0x4E01 not in presence
    assert 0x41 not in presence
    assert presence.code_points().tolist() == [HANZI_START, HANZI_END]
    with pytest.raises(CodePointRangeError):
        presence.add(HANZI_END + 1)
    with pytest.raises(ValueError):
        presence.add(HANZI_START - 1)


def test_encode_offsets_warns_and_wraps_on_overflow(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger=collector_module.__name__):
        offsets, overflow = encode_offsets([HANZI_START, HANZI_START + 40000])

    assert overflow == 1
    assert offsets.tolist() == [0, 40000 - 65536]
    assert "does not fit in a signed 16-bit integer" in caplog.text


def test_encode_offsets_validates_input() -> None:
    offsets, overflow = encode_offsets([])
    assert offsets.size == 0 and overflow == 0

    with pytest.raises(ValueError):
        encode_offsets([0x4E10, 0x4E10])
    with pytest.raises(ValueError):
        encode_offsets([[0x4E00]])


def test_table_to_dict_is_json_ready() -> None:
    payload = collect(SAMPLE).to_dict()

    assert payload["offsets"] == [0, 6746]
    assert payload["first"] == 0x4E2D
    assert payload["detected"] == 3
    assert payload["anchored"] is False


def test_stray_leading_byte_keeps_following_ideograph() -> None:
    stats = Collector().consume(iter_scalars(b"\x80" + "中".encode("utf-8"))).stats

    assert stats.total_chars == 1
    assert stats.detected == 1
    assert stats.invalid_bytes == 1
    assert collect(b"\x80" + "中".encode("utf-8")).code_points.tolist() == [0x4E2D]
