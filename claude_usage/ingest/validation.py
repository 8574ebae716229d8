"""
Schema validation for raw usage records.

Validation never raises for bad input: it returns a result carrying either
the typed entry or the list of violated constraints.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from claude_usage.core.models import UsageEntry

from .errors import SchemaValidationError

REQUIRED_STRINGS = ("id", "conversation_id", "model")
REQUIRED_COUNTS = ("input_tokens", "output_tokens", "total_tokens")
OPTIONAL_COUNTS = ("cache_creation_tokens", "cache_read_tokens")
OPTIONAL_COSTS = ("cost", "cost_usd")


@dataclass(frozen=True)
class Violation:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one raw record."""
    entry: Optional[UsageEntry] = None
    violations: Tuple[Violation, ...] = ()

    @property
    def ok(self) -> bool:
        return self.entry is not None

    @property
    def error(self) -> Optional[SchemaValidationError]:
        """The violations as an error value, for reporting."""
        if self.ok:
            return None
        return SchemaValidationError(self.violations)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_amount(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


def validate_entry(raw: Dict[str, Any]) -> ValidationResult:
    """Check a raw record and build a UsageEntry from it.

    Args:
        raw: Record with UsageEntry field names as keys

    Returns:
        ValidationResult holding the entry, or the violated constraints
    """
    violations = []

    for name in REQUIRED_STRINGS:
        value = raw.get(name)
        if not isinstance(value, str) or not value:
            violations.append(Violation(name, "must be a non-empty string"))

    timestamp = parse_timestamp(raw.get("timestamp"))
    if timestamp is None:
        violations.append(Violation("timestamp", "must be an ISO-8601 timestamp"))

    for name in REQUIRED_COUNTS:
        if not _is_count(raw.get(name)):
            violations.append(Violation(name, "must be a non-negative integer"))

    for name in OPTIONAL_COUNTS:
        value = raw.get(name)
        if value is not None and not _is_count(value):
            violations.append(Violation(name, "must be a non-negative integer"))

    for name in OPTIONAL_COSTS:
        value = raw.get(name)
        if value is not None and not _is_amount(value):
            violations.append(Violation(name, "must be a non-negative number"))

    is_batch_api = raw.get("is_batch_api", False)
    if not isinstance(is_batch_api, bool):
        violations.append(Violation("is_batch_api", "must be a boolean"))

    if violations:
        return ValidationResult(violations=tuple(violations))

    cost = raw.get("cost")
    cost_usd = raw.get("cost_usd")
    entry = UsageEntry(
        id=raw["id"],
        timestamp=timestamp,
        conversation_id=raw["conversation_id"],
        model=raw["model"],
        input_tokens=raw["input_tokens"],
        output_tokens=raw["output_tokens"],
        total_tokens=raw["total_tokens"],
        cache_creation_tokens=raw.get("cache_creation_tokens"),
        cache_read_tokens=raw.get("cache_read_tokens"),
        cost=float(cost) if cost is not None else None,
        cost_usd=float(cost_usd) if cost_usd is not None else None,
        is_batch_api=is_batch_api,
        source_file=raw.get("source_file"),
        line_number=raw.get("line_number"),
    )
    return ValidationResult(entry=entry)
