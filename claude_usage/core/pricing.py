"""
Pricing calculations and rate management.

Handles cost computations for Claude models from the configured pricing table.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Set

from claude_usage.config.loader import ModelPricing

from .models import UsageEntry
from .token_counter import TokenUsage

logger = logging.getLogger(__name__)

TOKENS_PER_PRICE_UNIT = Decimal("1000000")


class UnknownModelPricing(KeyError):
    """Raised when a model has no row in the pricing table."""
    def __init__(self, model: str):
        super().__init__(model)
        self.model = model

    def __str__(self) -> str:
        return f"Unknown model pricing: {self.model}"


@dataclass(frozen=True)
class PricingTable:
    """Pricing table for supported models, in USD per million tokens."""
    prices: Dict[str, ModelPricing]
    _warned: Set[str] = field(default_factory=set, compare=False, repr=False)

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a specific model.

        Args:
            model: Model identifier

        Returns:
            ModelPricing for the model

        Raises:
            UnknownModelPricing: If model is not in the table
        """
        if model not in self.prices:
            raise UnknownModelPricing(model)
        return self.prices[model]

    def usage_cost(self, model: str, usage: TokenUsage) -> float:
        """Price raw token usage for a model.

        Cache creation tokens are not billed separately here; only cache
        reads carry the cached rate.

        Raises:
            UnknownModelPricing: If model is not in the table
        """
        pricing = self.get_pricing(model)

        input_cost = Decimal(usage.prompt_tokens) * pricing.input
        output_cost = Decimal(usage.completion_tokens) * pricing.output
        cache_read_cost = Decimal(usage.cache_read_tokens) * pricing.cached

        return float((input_cost + output_cost + cache_read_cost) / TOKENS_PER_PRICE_UNIT)

    def warn_unknown(self, model: str) -> None:
        """Log a missing model once per table."""
        if model not in self._warned:
            self._warned.add(model)
            logger.warning("No pricing for model %s; counting its cost as 0", model)


def calculate_cost(entry: UsageEntry, pricing: PricingTable, batch_discount: float) -> float:
    """Calculate the cost of one usage entry.

    A cost supplied by the log (``cost`` then ``costUSD``) is used as-is.
    Otherwise the cost is derived from the pricing table and, for batch API
    requests, multiplied by ``batch_discount``. Unknown models cost 0.

    Args:
        entry: Validated usage entry
        pricing: Pricing table to derive costs from
        batch_discount: Multiplier applied to derived batch API costs

    Returns:
        Cost in USD, unrounded
    """
    if entry.cost is not None:
        return entry.cost
    if entry.cost_usd is not None:
        return entry.cost_usd

    try:
        cost = pricing.usage_cost(entry.model, TokenUsage.from_entry(entry))
    except UnknownModelPricing as e:
        pricing.warn_unknown(e.model)
        return 0.0

    if entry.is_batch_api:
        cost *= batch_discount
    return cost
