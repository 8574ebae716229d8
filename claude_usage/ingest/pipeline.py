"""
Ingestion pipeline entry points.

Enumerator -> batch scheduler (line decoder per file) -> merge-sort ->
aggregator. Each run owns all of its state; the configuration is an
immutable value passed in by the caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from claude_usage.config.loader import ConfigurationError, UsageConfig
from claude_usage.core.aggregator import UsageSummary, aggregate_usage
from claude_usage.core.models import UsageEntry

from .decoder import Clock, utc_now
from .merge import merge_entries
from .scheduler import DEFAULT_BATCH_SIZE, BatchScheduler, FileResult, ProgressCallback
from .sources import enumerate_sources

logger = logging.getLogger(__name__)

Root = Union[str, Path]


@dataclass(frozen=True)
class PipelineOptions:
    """Collaborator-provided switches for one run."""
    diagnostics: bool = True  # Per-line warnings; off in production
    streaming: bool = True  # False selects the whole-file loader
    batch_size: int = DEFAULT_BATCH_SIZE


@dataclass
class IngestionReport:
    """What happened to the inputs of a run."""
    files_found: int = 0
    files_processed: int = 0
    files_failed: List[str] = field(default_factory=list)
    skipped_roots: List[str] = field(default_factory=list)
    lines_read: int = 0
    lines_skipped: int = 0
    entries: int = 0


@dataclass
class IngestionResult:
    entries: List[UsageEntry]
    report: IngestionReport


@dataclass
class PipelineResult:
    entries: List[UsageEntry]
    report: IngestionReport
    summary: UsageSummary


def _build_report(found: int, skipped_roots: List[str], results: List[FileResult]) -> IngestionReport:
    report = IngestionReport(files_found=found, skipped_roots=list(skipped_roots))
    for result in results:
        if result.failed:
            report.files_failed.append(str(result.path))
        else:
            report.files_processed += 1
        if result.stats is not None and not result.failed:
            report.lines_read += result.stats.lines
            report.lines_skipped += result.stats.skipped
    return report


async def stream_usage_data(
    roots: Iterable[Root],
    options: Optional[PipelineOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    clock: Clock = utc_now,
) -> IngestionResult:
    """Load every usage entry under ``roots`` in timestamp order.

    Never fails because of malformed input: bad roots, files and lines are
    skipped and counted in the report.
    """
    options = options or PipelineOptions()
    scan = enumerate_sources(roots)

    scheduler = BatchScheduler(
        batch_size=options.batch_size,
        diagnostics=options.diagnostics,
        on_progress=on_progress,
        clock=clock,
    )
    if options.streaming:
        results = await scheduler.run(scan.files)
    else:
        results = scheduler.run_sync(scan.files)

    entries = merge_entries(result.entries for result in results)
    report = _build_report(len(scan.files), scan.skipped_roots, results)
    report.entries = len(entries)

    logger.info(
        "Loaded %d usage entries (%d lines skipped, %d files failed)",
        report.entries, report.lines_skipped, len(report.files_failed),
    )
    return IngestionResult(entries=entries, report=report)


def load_usage_data(
    roots: Iterable[Root],
    options: Optional[PipelineOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    clock: Clock = utc_now,
) -> IngestionResult:
    """Synchronous wrapper around stream_usage_data."""
    return asyncio.run(stream_usage_data(roots, options, on_progress, clock))


def run_pipeline(
    config: UsageConfig,
    roots: Optional[Iterable[Root]] = None,
    options: Optional[PipelineOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    clock: Clock = utc_now,
) -> PipelineResult:
    """Ingest and aggregate in one call.

    Args:
        config: Validated configuration; checked before any file is read
        roots: Directories to scan, defaulting to the configured data paths
        options: Run switches
        on_progress: Called with (files done, files total) after each batch
        clock: Timestamp source for records without one

    Raises:
        ConfigurationError: If ``config`` is not a UsageConfig
    """
    if not isinstance(config, UsageConfig):
        raise ConfigurationError("run_pipeline requires a validated UsageConfig")

    if roots is None:
        roots = config.expanded_data_paths()

    ingestion = load_usage_data(roots, options, on_progress, clock)
    summary = aggregate_usage(ingestion.entries, config)
    return PipelineResult(entries=ingestion.entries, report=ingestion.report, summary=summary)
