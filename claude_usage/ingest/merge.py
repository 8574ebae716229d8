"""
Merge of per-file entry sequences into one chronological stream.

A full in-memory stable sort: the whole corpus must fit in memory. Entries
with equal timestamps keep the order in which they were discovered (file
order, then line order).
"""

from itertools import chain
from typing import Iterable, List

from claude_usage.core.models import UsageEntry


def merge_entries(per_file: Iterable[Iterable[UsageEntry]]) -> List[UsageEntry]:
    """Concatenate per-file entries and order them by ascending timestamp."""
    return sorted(chain.from_iterable(per_file), key=lambda entry: entry.timestamp)
