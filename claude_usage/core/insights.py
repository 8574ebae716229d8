"""
Usage insights derived from validated entries.

Hour-of-day usage, per-model efficiency and batch API savings estimates.
"""

from dataclasses import dataclass
from datetime import timezone
from typing import Dict, List, Sequence, Set

from .models import UsageEntry
from .pricing import PricingTable, calculate_cost

OPUS_SHIFT_SHARE = 0.3  # Share of opus tokens assumed movable to sonnet
SAVINGS_THRESHOLD = 100.0


@dataclass
class HourlyUsage:
    """Totals for one hour of the day (UTC)."""
    hour: int
    total_tokens: int = 0
    cost: float = 0.0
    conversation_count: int = 0
    sonnet_tokens: int = 0
    opus_tokens: int = 0


@dataclass(frozen=True)
class ModelEfficiency:
    """Cost efficiency of one model across conversations."""
    model: str
    avg_tokens_per_conversation: float
    avg_cost_per_conversation: float
    total_conversations: int
    total_tokens: int
    total_cost: float
    cost_per_token: float


@dataclass(frozen=True)
class EfficiencyInsights:
    hourly_usage: List[HourlyUsage]
    peak_hours: List[int]
    model_efficiency: List[ModelEfficiency]
    potential_savings: float
    recommendation: str


def analyze_hourly_usage(
    entries: Sequence[UsageEntry],
    pricing: PricingTable,
    batch_discount: float,
) -> List[HourlyUsage]:
    """Bucket entries into the 24 hours of the day."""
    hourly = [HourlyUsage(hour=hour) for hour in range(24)]
    seen: Set[tuple] = set()

    for entry in entries:
        hour = entry.timestamp.astimezone(timezone.utc).hour
        bucket = hourly[hour]
        bucket.total_tokens += entry.total_tokens
        bucket.cost += calculate_cost(entry, pricing, batch_discount)

        if "sonnet" in entry.model:
            bucket.sonnet_tokens += entry.total_tokens
        elif "opus" in entry.model:
            bucket.opus_tokens += entry.total_tokens

        key = (hour, entry.conversation_id)
        if key not in seen:
            seen.add(key)
            bucket.conversation_count += 1

    return hourly


def analyze_model_efficiency(
    entries: Sequence[UsageEntry],
    pricing: PricingTable,
    batch_discount: float,
) -> List[ModelEfficiency]:
    """Summarise tokens and cost per model, in first-seen model order."""
    totals: Dict[str, Dict] = {}
    for entry in entries:
        data = totals.setdefault(
            entry.model, {"tokens": 0, "cost": 0.0, "conversations": set()}
        )
        data["tokens"] += entry.total_tokens
        data["cost"] += calculate_cost(entry, pricing, batch_discount)
        data["conversations"].add(entry.conversation_id)

    results = []
    for model, data in totals.items():
        conversations = len(data["conversations"])
        results.append(ModelEfficiency(
            model=model,
            avg_tokens_per_conversation=data["tokens"] / conversations,
            avg_cost_per_conversation=data["cost"] / conversations,
            total_conversations=conversations,
            total_tokens=data["tokens"],
            total_cost=data["cost"],
            cost_per_token=data["cost"] / data["tokens"] if data["tokens"] else 0.0,
        ))
    return results


def calculate_batch_api_savings(
    entries: Sequence[UsageEntry],
    pricing: PricingTable,
    batch_discount: float,
) -> float:
    """Savings had every interactive request gone through the batch API.

    Entries with a cost supplied by the log are unaffected by the discount
    and contribute nothing.
    """
    savings = 0.0
    for entry in entries:
        if entry.is_batch_api or entry.cost is not None or entry.cost_usd is not None:
            continue
        regular = calculate_cost(entry, pricing, batch_discount)
        savings += regular - regular * batch_discount
    return savings


def get_efficiency_insights(
    entries: Sequence[UsageEntry],
    pricing: PricingTable,
    batch_discount: float,
) -> EfficiencyInsights:
    hourly_usage = analyze_hourly_usage(entries, pricing, batch_discount)
    model_efficiency = analyze_model_efficiency(entries, pricing, batch_discount)

    active = [h for h in hourly_usage if h.total_tokens > 0]
    busiest = sorted(active, key=lambda h: h.total_tokens, reverse=True)[:3]
    peak_hours = sorted(h.hour for h in busiest)

    potential_savings = 0.0
    recommendation = "Continue current usage patterns"

    opus = next((m for m in model_efficiency if "opus" in m.model), None)
    sonnet = next((m for m in model_efficiency if "sonnet" in m.model), None)
    if opus and sonnet:
        cost_difference = opus.cost_per_token - sonnet.cost_per_token
        opus_tokens = sum(m.total_tokens for m in model_efficiency if "opus" in m.model)
        potential_savings = opus_tokens * OPUS_SHIFT_SHARE * cost_difference

        if potential_savings > SAVINGS_THRESHOLD:
            recommendation = (
                f"Consider using Sonnet 4 for simpler tasks. Could save "
                f"~${potential_savings:,.0f} by switching 30% of Opus usage to Sonnet."
            )

    return EfficiencyInsights(
        hourly_usage=hourly_usage,
        peak_hours=peak_hours,
        model_efficiency=model_efficiency,
        potential_savings=potential_savings,
        recommendation=recommendation,
    )
