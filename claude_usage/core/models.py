"""
Data models for usage analysis.

Defines the validated usage entry and the time-bucketed accumulators the
aggregator folds entries into.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional, Set


@dataclass(frozen=True)
class TokenRange:
    """A min/max pair used for limits, estimates and percentages."""
    min: float
    max: float


@dataclass(frozen=True)
class UsageEntry:
    """Immutable record of one completed assistant response.

    Only ever constructed by schema validation, so every field already
    satisfies the entry invariants (non-negative counts, parsed timestamp).
    """
    id: str
    timestamp: datetime
    conversation_id: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cache_creation_tokens: Optional[int] = None
    cache_read_tokens: Optional[int] = None
    cost: Optional[float] = None
    cost_usd: Optional[float] = None
    is_batch_api: bool = False
    source_file: Optional[str] = None
    line_number: Optional[int] = None


@dataclass
class DailyUsage:
    """Running totals for one calendar day (UTC)."""
    date: date
    total_tokens: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    cost: float = 0.0
    conversation_count: int = 0
    models: Set[str] = field(default_factory=set)
    conversations: Set[str] = field(default_factory=set, repr=False)

    def add(self, entry: UsageEntry, cost: float) -> None:
        """Fold one entry and its derived cost into the bucket."""
        self.total_tokens += entry.total_tokens
        self.prompt_tokens += entry.input_tokens
        self.completion_tokens += entry.output_tokens
        self.cache_creation_tokens += entry.cache_creation_tokens or 0
        self.cache_read_tokens += entry.cache_read_tokens or 0
        self.cost += cost
        self.models.add(entry.model)
        if entry.conversation_id not in self.conversations:
            self.conversations.add(entry.conversation_id)
            self.conversation_count += 1


@dataclass
class WeeklyUsage(DailyUsage):
    """Running totals for one Monday-to-Sunday week.

    ``date`` holds the week start; ``end_date`` the Sunday closing it.
    """
    end_date: Optional[date] = None
    family_tokens: Dict[str, int] = field(default_factory=dict)
    estimated_hours: Dict[str, TokenRange] = field(default_factory=dict)

    @property
    def start_date(self) -> date:
        return self.date


@dataclass(frozen=True)
class RateLimitInfo:
    """Consumption of a plan's weekly allowance, per model family.

    ``percent_used`` is a ratio (1.0 == the full allowance) and is never
    clamped; values above 1.0 mean the plan is over its limit.
    """
    plan: str
    weekly_limits: Dict[str, TokenRange]
    current_usage: WeeklyUsage
    percent_used: Dict[str, TokenRange]
