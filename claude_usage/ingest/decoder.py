"""
Line decoding of Claude conversation logs.

Turns one JSONL file into a lazy sequence of validated usage entries. Files
are read in fixed-size chunks and split on line boundaries, so memory use
does not grow with file size. Malformed or invalid lines are counted and
skipped; they never abort the file.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union

import aiofiles

from claude_usage.core.models import UsageEntry

from .errors import FileOpenError, FileReadError, LineParseError
from .validation import validate_entry

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

Clock = Callable[[], datetime]
PathLike = Union[str, Path]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FileStats:
    """Per-file line accounting."""
    path: str
    lines: int = 0
    valid: int = 0
    skipped: int = 0


def parse_line(line: str, line_number: int) -> Dict[str, Any]:
    """Parse one log line into a JSON object.

    Raises:
        LineParseError: If the line is not JSON or not a JSON object
    """
    try:
        record = json.loads(line)
    except (ValueError, RecursionError) as e:
        raise LineParseError(line_number, f"malformed JSON ({e})")
    if not isinstance(record, dict):
        raise LineParseError(line_number, "not a JSON object")
    return record


def build_raw_entry(record: Dict[str, Any], line_number: int, clock: Clock = utc_now) -> Optional[Dict[str, Any]]:
    """Extract the usage fields of a completed assistant response.

    Returns None for records that are not assistant responses carrying both
    a model and a usage block. Missing token counts default to zero and the
    total is computed unless the log supplies its own.
    """
    message = record.get("message")
    if record.get("type") != "assistant" or not isinstance(message, dict):
        return None

    usage = message.get("usage")
    model = message.get("model")
    if not isinstance(usage, dict) or not model:
        return None

    input_tokens = usage.get("input_tokens")
    input_tokens = 0 if input_tokens is None else input_tokens
    output_tokens = usage.get("output_tokens")
    output_tokens = 0 if output_tokens is None else output_tokens

    total_tokens = usage.get("total_tokens")
    if total_tokens is None and all(
        isinstance(n, int) and not isinstance(n, bool) for n in (input_tokens, output_tokens)
    ):
        total_tokens = input_tokens + output_tokens

    session_id = record.get("sessionId")
    return {
        "id": record.get("requestId") or f"{session_id or 'unknown'}-{line_number}",
        "timestamp": record.get("timestamp") or clock(),
        "conversation_id": session_id or "unknown",
        "model": model,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": total_tokens,
        "cache_creation_tokens": usage.get("cache_creation_input_tokens"),
        "cache_read_tokens": usage.get("cache_read_input_tokens"),
        "cost": record.get("cost"),
        "cost_usd": record.get("costUSD"),
        "is_batch_api": record.get("isBatchAPI", False),
        "line_number": line_number,
    }


class RecordDecoder:
    """Per-line decoding state for one file."""

    def __init__(
        self,
        path: str,
        stats: Optional[FileStats] = None,
        diagnostics: bool = False,
        clock: Clock = utc_now,
    ):
        self.path = path
        self.stats = stats or FileStats(path)
        self.diagnostics = diagnostics
        self.clock = clock

    def decode(self, line_number: int, line: str) -> Optional[UsageEntry]:
        """Decode one line; returns None when the line yields no entry."""
        self.stats.lines += 1

        if not line.strip():
            self.stats.skipped += 1
            return None

        try:
            record = parse_line(line, line_number)
        except LineParseError as e:
            self.stats.skipped += 1
            if self.diagnostics:
                logger.warning("Malformed JSON at %s in %s", e, self.path)
            return None

        raw = build_raw_entry(record, line_number, self.clock)
        if raw is None:
            return None
        raw["source_file"] = self.path

        result = validate_entry(raw)
        if not result.ok:
            self.stats.skipped += 1
            if self.diagnostics:
                logger.warning(
                    "Invalid entry at line %d in %s: %s", line_number, self.path, result.error
                )
            return None

        self.stats.valid += 1
        return result.entry

    def finish(self) -> FileStats:
        logger.debug(
            "%s: %d valid, %d skipped from %d lines",
            self.path, self.stats.valid, self.stats.skipped, self.stats.lines,
        )
        return self.stats


async def _iter_lines(path: PathLike, chunk_size: int) -> AsyncIterator[str]:
    """Yield the lines of a file without holding more than one chunk of it.

    Text mode with universal newlines folds ``\\r\\n`` and ``\\r`` into
    ``\\n``, including terminators split across chunks.

    Raises:
        FileOpenError: If the file cannot be opened
        FileReadError: If reading fails part-way
    """
    try:
        f = await aiofiles.open(path, mode="r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise FileOpenError(str(path), e)

    try:
        pending = ""
        while True:
            try:
                chunk = await f.read(chunk_size)
            except OSError as e:
                raise FileReadError(str(path), e)
            if not chunk:
                break

            lines = (pending + chunk).split("\n")
            pending = lines.pop()
            for line in lines:
                yield line

        if pending:
            yield pending
    finally:
        await f.close()


async def iter_file_entries(
    path: PathLike,
    stats: Optional[FileStats] = None,
    diagnostics: bool = False,
    chunk_size: int = CHUNK_SIZE,
    clock: Clock = utc_now,
) -> AsyncIterator[UsageEntry]:
    """Stream the valid usage entries of one file, in on-disk line order.

    Args:
        path: JSONL file to read
        stats: Optional counters updated while reading
        diagnostics: Log a warning for every skipped line
        chunk_size: Characters read per I/O call
        clock: Source of the timestamp for records that lack one

    Raises:
        FileOpenError: If the file cannot be opened
        FileReadError: If reading fails part-way
    """
    decoder = RecordDecoder(str(path), stats, diagnostics, clock)
    line_number = 0
    async for line in _iter_lines(path, chunk_size):
        line_number += 1
        entry = decoder.decode(line_number, line)
        if entry is not None:
            yield entry
    decoder.finish()


def read_file_entries(
    path: PathLike,
    stats: Optional[FileStats] = None,
    diagnostics: bool = False,
    clock: Clock = utc_now,
) -> List[UsageEntry]:
    """Whole-file variant of iter_file_entries, for the non-streaming loader."""
    try:
        f = open(path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise FileOpenError(str(path), e)

    with f:
        try:
            content = f.read()
        except OSError as e:
            raise FileReadError(str(path), e)

    decoder = RecordDecoder(str(path), stats, diagnostics, clock)
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    entries = []
    for line_number, line in enumerate(lines, start=1):
        entry = decoder.decode(line_number, line)
        if entry is not None:
            entries.append(entry)
    decoder.finish()
    return entries
