"""
Configuration management and loading.

Builds the immutable configuration value handed to the ingestion pipeline:
model pricing, plan rate limits, token-per-hour estimates and the batch API
discount.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from claude_usage.core.models import TokenRange


DEFAULT_CONFIG_PATH = Path(__file__).with_name("default.yaml")
CONFIG_ENV_VAR = "CLAUDE_USAGE_CONFIG"

DEFAULT_DATA_PATHS = (
    "~/.config/claude/projects",
    "~/.claude/projects",
)

DEFAULT_MODEL_FAMILIES = {
    "sonnet4": "sonnet",
    "opus4": "opus",
}

DEFAULT_RECOMMENDATIONS = {
    "code_generation": ("claude-3.5-sonnet-20241022", 0.8),
    "debugging": ("claude-opus-4-20250514", 0.7),
    "code_review": ("claude-3.5-sonnet-20241022", 0.75),
    "documentation": ("claude-3.5-sonnet-20241022", 0.9),
    "architecture": ("claude-opus-4-20250514", 0.8),
    "complex_analysis": ("claude-opus-4-20250514", 0.9),
    "simple_query": ("claude-3.5-sonnet-20241022", 0.95),
    "refactoring": ("claude-3.5-sonnet-20241022", 0.8),
}

REQUIRED_SECTIONS = ("models", "rate_limits", "token_estimates", "batch_api_discount")
OPTIONAL_SECTIONS = ("data_paths", "recommendations", "model_families")


class ConfigurationError(ValueError):
    """Raised when the configuration is missing sections or holds invalid values."""


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model, in USD per million tokens."""
    input: Decimal
    output: Decimal
    cached: Decimal
    name: Optional[str] = None


@dataclass(frozen=True)
class PlanLimits:
    """Weekly token allowances of one subscription plan."""
    price: float
    weekly: Dict[str, TokenRange]


@dataclass(frozen=True)
class TaskRecommendation:
    """Model suggested for a task type and the confidence in that mapping."""
    model: str
    confidence: float


@dataclass(frozen=True)
class UsageConfig:
    """Complete, validated configuration for one analysis run."""
    models: Dict[str, ModelPricing]
    rate_limits: Dict[str, PlanLimits]
    token_estimates: Dict[str, TokenRange]
    batch_api_discount: float
    data_paths: Tuple[str, ...] = DEFAULT_DATA_PATHS
    recommendations: Dict[str, TaskRecommendation] = field(default_factory=dict)
    model_families: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_MODEL_FAMILIES)
    )

    def get_plan(self, plan: str) -> PlanLimits:
        """Get the limits of a plan.

        Raises:
            ValueError: If the plan is not configured
        """
        if plan not in self.rate_limits:
            raise ValueError(
                f"Unknown plan: {plan}. Valid plans: {sorted(self.rate_limits)}"
            )
        return self.rate_limits[plan]

    def model_family(self, model: str) -> Optional[str]:
        """Return the family a model id belongs to, or None."""
        for family, pattern in self.model_families.items():
            if pattern in model:
                return family
        return None

    def expanded_data_paths(self) -> Tuple[Path, ...]:
        return tuple(Path(os.path.expanduser(p)) for p in self.data_paths)


def resolve_config_path(path: Optional[str] = None) -> Path:
    """Find the configuration file to load.

    Searches, in order: the explicit path, ``$CLAUDE_USAGE_CONFIG``,
    ``./config/local.yaml``, ``./config/default.yaml`` and the packaged
    default file.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist
    """
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        return config_path

    candidates = [
        os.environ.get(CONFIG_ENV_VAR),
        Path.cwd() / "config" / "local.yaml",
        Path.cwd() / "config" / "default.yaml",
        DEFAULT_CONFIG_PATH,
    ]
    for candidate in candidates:
        if candidate and Path(candidate).exists():
            return Path(candidate)
    return DEFAULT_CONFIG_PATH


def load_config(path: Optional[str] = None) -> UsageConfig:
    """Load and validate the usage configuration from a YAML file.

    Args:
        path: Optional path to a YAML configuration file

    Returns:
        Validated UsageConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ConfigurationError: If configuration is invalid
    """
    config_path = resolve_config_path(path)

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {config_path}: {e}")

    return parse_config(raw_config)


def parse_config(raw_config: Any) -> UsageConfig:
    """Validate a raw configuration mapping and build a UsageConfig.

    Every required section must be present; the run must fail here rather
    than part-way through ingestion.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if not raw_config:
        raise ConfigurationError("Configuration is empty")
    if not isinstance(raw_config, dict):
        raise ConfigurationError("Configuration must be a dictionary")

    unknown_keys = set(raw_config.keys()) - set(REQUIRED_SECTIONS) - set(OPTIONAL_SECTIONS)
    if unknown_keys:
        raise ConfigurationError(f"Unknown configuration keys: {unknown_keys}")

    for section in REQUIRED_SECTIONS:
        if section not in raw_config:
            raise ConfigurationError(f"Missing required '{section}' section")

    models = _parse_models(_require_dict(raw_config['models'], 'models'))

    plans = _require_dict(raw_config['rate_limits'], 'rate_limits')
    if not plans:
        raise ConfigurationError("'rate_limits' must define at least one plan")
    rate_limits = {
        plan: _parse_plan(data, f"rate_limits.{plan}")
        for plan, data in plans.items()
    }

    estimates = _require_dict(raw_config['token_estimates'], 'token_estimates')
    if not estimates:
        raise ConfigurationError("'token_estimates' must define at least one model family")
    token_estimates = {
        family: _parse_range(data, f"token_estimates.{family}")
        for family, data in estimates.items()
    }

    discount = raw_config['batch_api_discount']
    if not _is_number(discount) or not 0 <= discount <= 1:
        raise ConfigurationError("'batch_api_discount' must be a number between 0 and 1")

    data_paths = raw_config.get('data_paths', list(DEFAULT_DATA_PATHS))
    if not isinstance(data_paths, list) or not all(isinstance(p, str) for p in data_paths):
        raise ConfigurationError("'data_paths' must be a list of strings")

    model_families = raw_config.get('model_families', DEFAULT_MODEL_FAMILIES)
    if not isinstance(model_families, dict) or not all(
        isinstance(v, str) and v for v in model_families.values()
    ):
        raise ConfigurationError("'model_families' must map family names to substrings")

    recommendations = _parse_recommendations(raw_config.get('recommendations', {}), models)

    return UsageConfig(
        models=models,
        rate_limits=rate_limits,
        token_estimates=token_estimates,
        batch_api_discount=float(discount),
        data_paths=tuple(data_paths),
        recommendations=recommendations,
        model_families=dict(model_families),
    )


def _parse_models(data: Dict) -> Dict[str, ModelPricing]:
    if not data:
        raise ConfigurationError("'models' must define at least one model")

    models = {}
    for model_id, model_data in data.items():
        path = f"models.{model_id}"
        model_data = _require_dict(model_data, path)

        allowed_keys = {'name', 'input', 'output', 'cached'}
        unknown_keys = set(model_data.keys()) - allowed_keys
        if unknown_keys:
            raise ConfigurationError(f"Unknown keys in {path}: {unknown_keys}")

        prices = {}
        for key in ('input', 'output', 'cached'):
            if key not in model_data:
                raise ConfigurationError(f"Missing required '{key}' in {path}")
            prices[key] = _to_price(model_data[key], f"{path}.{key}")

        models[str(model_id)] = ModelPricing(name=model_data.get('name'), **prices)
    return models


def _parse_plan(data: Any, path: str) -> PlanLimits:
    data = _require_dict(data, path)
    if 'weekly' not in data:
        raise ConfigurationError(f"Missing required 'weekly' in {path}")

    price = data.get('price', 0)
    if not _is_number(price) or price < 0:
        raise ConfigurationError(f"'price' in {path} must be >= 0")

    weekly = {
        family: _parse_range(limit, f"{path}.weekly.{family}")
        for family, limit in _require_dict(data['weekly'], f"{path}.weekly").items()
    }
    return PlanLimits(price=float(price), weekly=weekly)


def _parse_range(data: Any, path: str) -> TokenRange:
    """Parse a ``{min, max}`` mapping of positive numbers."""
    data = _require_dict(data, path)
    for key in ('min', 'max'):
        if key not in data:
            raise ConfigurationError(f"Missing required '{key}' in {path}")
        if not _is_number(data[key]) or data[key] <= 0:
            raise ConfigurationError(f"'{key}' in {path} must be > 0")
    if data['min'] > data['max']:
        raise ConfigurationError(f"'min' in {path} must not exceed 'max'")
    return TokenRange(min=data['min'], max=data['max'])


def _parse_recommendations(
    data: Any,
    models: Mapping[str, ModelPricing],
) -> Dict[str, TaskRecommendation]:
    data = _require_dict(data, 'recommendations')

    # Built-in mappings only apply to models the pricing table knows about
    merged = {
        task: TaskRecommendation(model=model, confidence=confidence)
        for task, (model, confidence) in DEFAULT_RECOMMENDATIONS.items()
        if model in models
    }
    for task, rec in data.items():
        path = f"recommendations.{task}"
        rec = _require_dict(rec, path)
        if not isinstance(rec.get('model'), str):
            raise ConfigurationError(f"'model' in {path} must be a string")
        if rec['model'] not in models:
            raise ConfigurationError(f"{path} references unknown model '{rec['model']}'")
        confidence = rec.get('confidence')
        if not _is_number(confidence) or not 0 <= confidence <= 1:
            raise ConfigurationError(f"'confidence' in {path} must be between 0 and 1")
        merged[task] = TaskRecommendation(model=rec['model'], confidence=float(confidence))
    return merged


def _require_dict(value: Any, path: str) -> Dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{path}' must be a dictionary")
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_price(value: Any, path: str) -> Decimal:
    if not _is_number(value) or value < 0:
        raise ConfigurationError(f"'{path}' must be a number >= 0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"'{path}' is not a valid price")
