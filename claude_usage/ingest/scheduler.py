"""
Batched, bounded-concurrency processing of log files.

Files are decoded in consecutive batches; the files of one batch run
concurrently and the next batch starts only after all of them settle, so at
most ``batch_size`` files are open at once. Batch size only affects
scheduling: results always come back in input order.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from claude_usage.core.models import UsageEntry

from .decoder import CHUNK_SIZE, Clock, FileStats, iter_file_entries, read_file_entries, utc_now
from .errors import FileIngestError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
PROGRESS_LOG_THRESHOLD = 20

ProgressCallback = Callable[[int, int], None]


@dataclass
class FileResult:
    """Contribution of one file; empty when the file failed."""
    path: Path
    entries: List[UsageEntry] = field(default_factory=list)
    stats: Optional[FileStats] = None
    failed: bool = False
    error: Optional[str] = None


class BatchScheduler:
    """Drives the line decoder over many files in fixed-size batches."""

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        diagnostics: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        chunk_size: int = CHUNK_SIZE,
        clock: Clock = utc_now,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size
        self.diagnostics = diagnostics
        self.on_progress = on_progress
        self.chunk_size = chunk_size
        self.clock = clock

    async def run(self, paths: Sequence[Path]) -> List[FileResult]:
        """Process every file and return one result per path, in input order."""
        results: List[FileResult] = []
        total = len(paths)

        for start in range(0, total, self.batch_size):
            batch = paths[start:start + self.batch_size]
            tasks = [asyncio.create_task(self._process(Path(p))) for p in batch]
            results.extend(await asyncio.gather(*tasks))
            self._report_progress(len(results), total)

        return results

    def run_sync(self, paths: Sequence[Path]) -> List[FileResult]:
        """Whole-file fallback: read files one after another, without asyncio."""
        results = []
        for path in paths:
            path = Path(path)
            stats = FileStats(str(path))
            try:
                entries = read_file_entries(path, stats, self.diagnostics, self.clock)
            except (FileIngestError, OSError) as e:
                results.append(self._failed(path, stats, e))
            else:
                results.append(FileResult(path=path, entries=entries, stats=stats))
            self._report_progress(len(results), len(paths))
        return results

    async def _process(self, path: Path) -> FileResult:
        """Decode one file; any I/O failure resolves to an empty result."""
        stats = FileStats(str(path))
        entries = []
        try:
            async for entry in iter_file_entries(
                path, stats, self.diagnostics, self.chunk_size, self.clock
            ):
                entries.append(entry)
        except (FileIngestError, OSError) as e:
            return self._failed(path, stats, e)
        return FileResult(path=path, entries=entries, stats=stats)

    @staticmethod
    def _failed(path: Path, stats: FileStats, error: Exception) -> FileResult:
        logger.warning("Error reading %s: %s", path, error)
        return FileResult(path=path, stats=stats, failed=True, error=str(error))

    def _report_progress(self, done: int, total: int) -> None:
        if self.on_progress is not None:
            self.on_progress(done, total)
        if total > PROGRESS_LOG_THRESHOLD:
            percent = round(done / total * 100)
            logger.info("Progress: %d%% (%d/%d files)", percent, done, total)
