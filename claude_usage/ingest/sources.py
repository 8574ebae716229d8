"""
Discovery of usage log files under the configured roots.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Union

from .errors import RootScanError

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".jsonl"
MAX_DEPTH = 3


@dataclass
class SourceScan:
    """Files found under the roots, and the roots that had to be skipped."""
    files: List[Path] = field(default_factory=list)
    skipped_roots: List[str] = field(default_factory=list)


def enumerate_sources(
    roots: Iterable[Union[str, Path]],
    max_depth: int = MAX_DEPTH,
) -> SourceScan:
    """Find ``*.jsonl`` files under each root, at most ``max_depth`` levels deep.

    A root that cannot be scanned is skipped with a warning; the remaining
    roots are still scanned. Paths are de-duplicated and sorted so discovery
    order is the same on every run.

    Args:
        roots: Root directories to scan
        max_depth: Maximum number of path components below a root

    Returns:
        SourceScan with the discovered files and the skipped roots
    """
    scan = SourceScan()
    found = set()

    for root in roots:
        root_path = Path(root).expanduser()
        try:
            files = _scan_root(root_path, max_depth)
        except RootScanError as e:
            logger.warning("%s; skipping", e)
            scan.skipped_roots.append(str(root_path))
            continue
        found.update(files)

    scan.files = sorted(found)
    logger.info("Found %d data files to process", len(scan.files))
    return scan


def _scan_root(root: Path, max_depth: int) -> List[Path]:
    """List log files of one root.

    Raises:
        RootScanError: If the root is missing, not a directory, or unreadable
    """
    if not root.exists():
        raise RootScanError(str(root), "no such directory")
    if not root.is_dir():
        raise RootScanError(str(root), "not a directory")

    try:
        with os.scandir(root) as it:
            entries = list(it)
    except OSError as e:
        raise RootScanError(str(root), e.strerror or str(e))

    files: List[Path] = []
    _collect(entries, 1, max_depth, files)
    return files


def _collect(entries: List[os.DirEntry], depth: int, max_depth: int, files: List[Path]) -> None:
    for entry in entries:
        try:
            if entry.is_file() and entry.name.endswith(LOG_SUFFIX):
                files.append(Path(entry.path))
            elif entry.is_dir() and depth < max_depth:
                with os.scandir(entry.path) as children:
                    _collect(list(children), depth + 1, max_depth, files)
        except OSError as e:
            logger.debug("Skipping unreadable path %s: %s", entry.path, e)
