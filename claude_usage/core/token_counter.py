"""
Token counting and usage tracking.

Normalises the token counts of a usage entry for cost calculation.
"""

from dataclasses import dataclass

from .models import UsageEntry


@dataclass(frozen=True)
class TokenUsage:
    """Token usage data for cost calculation.

    Contains exact token counts without estimation or model-specific logic.
    """
    prompt_tokens: int
    completion_tokens: int
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens

    @classmethod
    def from_entry(cls, entry: UsageEntry) -> "TokenUsage":
        return cls(
            prompt_tokens=entry.input_tokens,
            completion_tokens=entry.output_tokens,
            cache_creation_tokens=entry.cache_creation_tokens or 0,
            cache_read_tokens=entry.cache_read_tokens or 0,
        )
