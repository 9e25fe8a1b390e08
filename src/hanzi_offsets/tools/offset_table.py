"""Generate delta-encoded CJK glyph range tables from text files.

The generated C declaration follows the ``accumulative_offsets_from_0x4E00``
convention used by Dear ImGui's glyph range helpers: a ``short`` array whose
cumulative sum yields the ideographs that must be rasterised.
"""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence

from ..scan.collector import Collector, OffsetTable
from ..scan.common import HANZI_START, NoTargetCharactersError, format_code_point
from ..scan.utf8 import ResyncPolicy, iter_scalars

logger = logging.getLogger(__name__)
_package_logger = logging.getLogger(__name__.split(".")[0])

PROG = "hanzi-offsets"
DEFAULT_ARRAY_NAME = "accumulative_offsets_from_0x4E00"
VALUES_PER_LINE = 16
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")


@dataclass(frozen=True)
class ExtractionSummary:
    """Summary of the table written by :func:`generate`."""

    source: Path
    output: Path
    array_name: str
    total_chars: int
    detected: int
    unique: int
    first: int
    last: int
    invalid_bytes: int
    overflow_count: int
    anchored: bool
    log_path: Path | None = None

    def to_dict(self) -> Dict[str, object]:
        """Serialise the summary into JSON-serialisable primitives."""

        return {
            "source": str(self.source),
            "output": str(self.output),
            "array_name": self.array_name,
            "total_chars": self.total_chars,
            "detected": self.detected,
            "unique": self.unique,
            "first": format_code_point(self.first),
            "last": format_code_point(self.last),
            "invalid_bytes": self.invalid_bytes,
            "overflow_count": self.overflow_count,
            "anchored": self.anchored,
            "log_path": str(self.log_path) if self.log_path is not None else None,
        }


def _normalise_path(path: Path) -> Path:
    """Return an absolute version of *path* tolerant of exotic links."""

    path = path.expanduser()
    try:
        return path.resolve()
    except OSError:  # pragma: no cover - exercised on Windows
        return path.absolute()


def validate_array_name(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Array name {name!r} is not a valid C identifier")
    return name


def render_array(
    table: OffsetTable,
    *,
    name: str = DEFAULT_ARRAY_NAME,
    source: Path | str | None = None,
) -> str:
    """Render *table* as a ``static const short`` C array declaration."""

    validate_array_name(name)
    lines: List[str] = []
    if source is not None:
        lines.append(f"// CJK Unified Ideographs extracted from {source}")
    if table.anchored:
        lines.append(f"// Accumulative offsets from initial code point 0x{HANZI_START:04X}")
    else:
        lines.append(
            "// Accumulative offsets; the first entry stands for "
            f"{format_code_point(table.first)}"
        )
    lines.append(
        f"// {table.count} ideographs, "
        f"{format_code_point(table.first)}..{format_code_point(table.last)}"
    )
    lines.append(f"static const short {name}[{table.count}] = {{")

    values = [str(int(value)) for value in table.offsets]
    for start in range(0, len(values), VALUES_PER_LINE):
        row = ", ".join(values[start : start + VALUES_PER_LINE])
        trailer = "," if start + VALUES_PER_LINE < len(values) else ""
        lines.append(f"    {row}{trailer}")
    lines.append("};")
    return "\n".join(lines) + "\n"


def format_summary(summary: ExtractionSummary) -> str:
    """Return a human-friendly multi-line summary of the generated table."""

    header = "Hanzi Offset Table Summary"
    lines = [header, "=" * len(header)]
    lines.append(f"Source : {summary.source}")
    lines.append(f"Output : {summary.output}")
    lines.append(f"Array  : {summary.array_name}[{summary.unique}]")
    if summary.log_path:
        lines.append(f"Log file: {summary.log_path}")

    lines.append("")
    lines.append(f"Characters decoded : {summary.total_chars}")
    lines.append(f"Ideographs found   : {summary.detected} ({summary.unique} unique)")
    lines.append(f"Invalid bytes      : {summary.invalid_bytes}")
    lines.append(f"First ideograph    : {format_code_point(summary.first)} {chr(summary.first)}")
    lines.append(f"Last ideograph     : {format_code_point(summary.last)} {chr(summary.last)}")
    if summary.overflow_count:
        lines.append(f"Offset overflows   : {summary.overflow_count}")
    return "\n".join(lines)


def render_summary(summary: ExtractionSummary, *, format: str = "table") -> str:
    """Serialise ``summary`` as ``"table"`` or ``"json"`` (case-insensitive)."""

    normalized = format.lower()
    if normalized == "table":
        return format_summary(summary)
    if normalized == "json":
        return json.dumps(summary.to_dict(), indent=2, sort_keys=True)
    raise ValueError(f"Unsupported summary format: {format}")


def generate(
    source: Path,
    output: Path,
    *,
    array_name: str = DEFAULT_ARRAY_NAME,
    resync: ResyncPolicy | str = ResyncPolicy.CLEAR,
    anchored: bool = False,
    verbose: bool = False,
    log_path: Path | None = None,
) -> ExtractionSummary:
    """Scan *source* and write its offset table to *output*.

    The input is read to completion before *output* is opened, so a failed
    read or an input without ideographs never leaves an output file behind.
    """

    source = _normalise_path(Path(source))
    output = _normalise_path(Path(output))
    validate_array_name(array_name)

    if verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)

    file_handler: logging.Handler | None = None
    previous_level = _package_logger.level

    def log_verbose(message: str, *args: object) -> None:
        if verbose:
            logger.info(message, *args)
        else:
            logger.debug(message, *args)

    try:
        if log_path is not None:
            log_path = _normalise_path(Path(log_path))
            file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )
            _package_logger.addHandler(file_handler)
            _package_logger.setLevel(logging.DEBUG)

        log_verbose("Reading %s", source)
        collector = Collector()
        with source.open("rb") as fh:
            collector.consume(iter_scalars(fh, resync=resync))
        stats = collector.stats
        logger.info(
            "Processed %d characters, found %d ideographs",
            stats.total_chars,
            stats.detected,
        )
        if stats.invalid_bytes:
            log_verbose("Dropped %d undecodable bytes", stats.invalid_bytes)

        try:
            table = collector.build(anchored=anchored)
        except NoTargetCharactersError as exc:
            raise NoTargetCharactersError(
                f"No CJK Unified Ideographs found in {source} "
                f"({stats.total_chars} characters scanned)"
            ) from exc

        with output.open("w", encoding="utf-8") as fh:
            fh.write(render_array(table, name=array_name, source=source))
        logger.info("Wrote %d ideograph offsets to %s", table.count, output)

        summary = ExtractionSummary(
            source=source,
            output=output,
            array_name=array_name,
            total_chars=stats.total_chars,
            detected=stats.detected,
            unique=table.count,
            first=table.first,
            last=table.last,
            invalid_bytes=stats.invalid_bytes,
            overflow_count=table.overflow_count,
            anchored=anchored,
            log_path=log_path,
        )
        for line in format_summary(summary).splitlines():
            log_verbose(line)
        return summary
    finally:
        if file_handler is not None:
            _package_logger.removeHandler(file_handler)
            file_handler.close()
            _package_logger.setLevel(previous_level)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = _ArgumentParser(
        prog=PROG,
        description=(
            "Extract CJK Unified Ideographs (U+4E00-U+9FFF) from a text file and "
            "write them as a delta-encoded C array of glyph offsets."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("input", type=Path, help="File to scan (read as raw UTF-8 bytes)")
    parser.add_argument("output", type=Path, help="Path of the C source file to write")
    parser.add_argument(
        "--array-name",
        default=DEFAULT_ARRAY_NAME,
        help="Identifier used for the generated array",
    )
    parser.add_argument(
        "--resync",
        choices=[policy.value for policy in ResyncPolicy],
        default=ResyncPolicy.CLEAR.value,
        help=(
            "Recovery after malformed input: 'clear' drops the whole 4-byte window, "
            "'skip' drops one byte at a time"
        ),
    )
    parser.add_argument(
        "--anchored",
        action="store_true",
        help="Store the first entry as its offset from U+4E00 instead of 0",
    )
    parser.add_argument(
        "--verbose",
        dest="verbose",
        action="store_true",
        default=False,
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--no-summary",
        dest="print_summary",
        action="store_false",
        help="Do not print the run summary",
    )
    parser.add_argument(
        "--summary-format",
        choices=("table", "json"),
        default="table",
        help="Format to use when rendering the run summary",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to write a debug log of the run to",
    )
    parser.set_defaults(print_summary=True)

    args = parser.parse_args(argv)
    if not _IDENTIFIER.match(args.array_name):
        parser.error(f"--array-name {args.array_name!r} is not a valid C identifier")
    return args


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO)

    try:
        summary = generate(
            args.input,
            args.output,
            array_name=args.array_name,
            resync=args.resync,
            anchored=args.anchored,
            verbose=args.verbose,
            log_path=args.log_file,
        )
    except NoTargetCharactersError as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1

    if args.print_summary:
        print(render_summary(summary, format=args.summary_format))
    return 0


__all__ = [
    "DEFAULT_ARRAY_NAME",
    "ExtractionSummary",
    "format_summary",
    "generate",
    "main",
    "render_array",
    "render_summary",
    "validate_array_name",
]


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
