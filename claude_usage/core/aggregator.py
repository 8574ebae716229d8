"""
Usage aggregation into daily and weekly buckets.

Folds the chronologically ordered entry stream into per-day and per-week
accumulators. Buckets are created lazily the first time an entry touches
them and live only for one aggregation run.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, Optional, Tuple

from claude_usage.config.loader import UsageConfig

from .models import DailyUsage, TokenRange, UsageEntry, WeeklyUsage
from .pricing import PricingTable, calculate_cost

WeekKey = Tuple[date, date]


@dataclass
class UsageSummary:
    """Result of one aggregation run."""
    daily: Dict[date, DailyUsage]
    weekly: Dict[WeekKey, WeeklyUsage]

    @property
    def total_tokens(self) -> int:
        return sum(day.total_tokens for day in self.daily.values())

    @property
    def total_cost(self) -> float:
        return sum(day.cost for day in self.daily.values())


def entry_day(entry: UsageEntry) -> date:
    """Calendar day (UTC) an entry belongs to."""
    return entry.timestamp.astimezone(timezone.utc).date()


def week_bounds(day: date) -> WeekKey:
    """Monday and Sunday of the ISO week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def estimate_hours(tokens: int, rate: TokenRange) -> TokenRange:
    """Convert a token count into an hour range using tokens-per-hour rates.

    The fastest rate gives the lower bound of hours, the slowest the upper.
    """
    return TokenRange(min=tokens / rate.max, max=tokens / rate.min)


class UsageAggregator:
    """Single-pass fold of ordered usage entries into time buckets."""

    def __init__(self, config: UsageConfig, pricing: Optional[PricingTable] = None):
        self.config = config
        self.pricing = pricing or PricingTable(config.models)
        self.daily: Dict[date, DailyUsage] = {}
        self.weekly: Dict[WeekKey, WeeklyUsage] = {}

    def add(self, entry: UsageEntry) -> None:
        """Fold one entry into its day and week buckets."""
        cost = calculate_cost(entry, self.pricing, self.config.batch_api_discount)
        day = entry_day(entry)

        daily = self.daily.get(day)
        if daily is None:
            daily = self.daily[day] = DailyUsage(date=day)
        daily.add(entry, cost)

        key = week_bounds(day)
        weekly = self.weekly.get(key)
        if weekly is None:
            weekly = self.weekly[key] = WeeklyUsage(date=key[0], end_date=key[1])
        weekly.add(entry, cost)

        family = self.config.model_family(entry.model)
        if family is not None:
            weekly.family_tokens[family] = weekly.family_tokens.get(family, 0) + entry.total_tokens

    def extend(self, entries: Iterable[UsageEntry]) -> None:
        for entry in entries:
            self.add(entry)

    def summary(self) -> UsageSummary:
        """Finalise derived weekly fields and return the buckets."""
        for weekly in self.weekly.values():
            weekly.estimated_hours = {
                family: estimate_hours(weekly.family_tokens.get(family, 0), rate)
                for family, rate in self.config.token_estimates.items()
            }
        return UsageSummary(daily=self.daily, weekly=self.weekly)


def aggregate_usage(entries: Iterable[UsageEntry], config: UsageConfig) -> UsageSummary:
    """Aggregate an ordered entry sequence into daily and weekly usage."""
    aggregator = UsageAggregator(config)
    aggregator.extend(entries)
    return aggregator.summary()


def current_week_usage(summary: UsageSummary, now: Optional[datetime] = None) -> WeeklyUsage:
    """Return the bucket for the week containing ``now``.

    An empty (zero) bucket is returned when nothing was recorded that week.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    key = week_bounds(now.astimezone(timezone.utc).date())

    weekly = summary.weekly.get(key)
    if weekly is None:
        weekly = WeeklyUsage(date=key[0], end_date=key[1])
    return weekly
