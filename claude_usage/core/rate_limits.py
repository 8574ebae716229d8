"""
Rate-limit consumption for subscription plans.
"""

from claude_usage.config.loader import UsageConfig

from .models import RateLimitInfo, TokenRange, WeeklyUsage


def get_rate_limit_info(weekly: WeeklyUsage, plan: str, config: UsageConfig) -> RateLimitInfo:
    """Compute how much of a plan's weekly allowance has been used.

    Each end of the range is computed independently: ``min`` against the
    smallest allowance and ``max`` against the largest. Ratios above 1.0 are
    kept as-is so callers can show over-limit states.

    Args:
        weekly: Usage of the week being checked
        plan: Plan identifier, e.g. "Pro"
        config: Configuration holding the plan limits

    Returns:
        RateLimitInfo with unclamped percent-used ranges

    Raises:
        ValueError: If the plan is not configured
    """
    limits = config.get_plan(plan)

    percent_used = {}
    for family, limit in limits.weekly.items():
        tokens = weekly.family_tokens.get(family, 0)
        percent_used[family] = TokenRange(min=tokens / limit.min, max=tokens / limit.max)

    return RateLimitInfo(
        plan=plan,
        weekly_limits=dict(limits.weekly),
        current_usage=weekly,
        percent_used=percent_used,
    )
