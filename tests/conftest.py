"""
Shared fixtures for the test suite.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from claude_usage.config.loader import parse_config

TEST_CONFIG: Dict[str, Any] = {
    "models": {
        "claude-3.5-sonnet-20241022": {
            "name": "Claude 3.5 Sonnet",
            "input": 3.0,
            "output": 15.0,
            "cached": 0.375,
        },
        "claude-opus-4-20250514": {
            "name": "Claude Opus 4",
            "input": 15.0,
            "output": 75.0,
            "cached": 1.875,
        },
        "claude-3-haiku-20240307": {
            "name": "Claude 3 Haiku",
            "input": 0.25,
            "output": 1.25,
            "cached": 0.03125,
        },
    },
    "rate_limits": {
        "Pro": {
            "price": 20,
            "weekly": {
                "sonnet4": {"min": 40000, "max": 80000},
                "opus4": {"min": 4000, "max": 8000},
            },
        },
    },
    "token_estimates": {
        "sonnet4": {"min": 50000, "max": 100000},
        "opus4": {"min": 40000, "max": 80000},
    },
    "batch_api_discount": 0.5,
    "data_paths": ["~/.config/claude/projects"],
    "recommendations": {
        "code_generation": {"model": "claude-3.5-sonnet-20241022", "confidence": 0.8},
        "debugging": {"model": "claude-opus-4-20250514", "confidence": 0.7},
        "simple_query": {"model": "claude-3.5-sonnet-20241022", "confidence": 0.95},
        "documentation": {"model": "claude-3.5-sonnet-20241022", "confidence": 0.9},
    },
}


def assistant_record(
    timestamp: Optional[str] = "2024-01-15T10:00:00Z",
    model: str = "claude-3.5-sonnet-20241022",
    input_tokens: Optional[int] = 1000,
    output_tokens: Optional[int] = 500,
    session_id: Optional[str] = "session-1",
    request_id: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build one assistant log record as the Claude client writes it."""
    usage = {}
    if input_tokens is not None:
        usage["input_tokens"] = input_tokens
    if output_tokens is not None:
        usage["output_tokens"] = output_tokens
    usage.update(extra.pop("usage", {}))

    record: Dict[str, Any] = {
        "type": "assistant",
        "message": {"model": model, "usage": usage},
    }
    if timestamp is not None:
        record["timestamp"] = timestamp
    if session_id is not None:
        record["sessionId"] = session_id
    if request_id is not None:
        record["requestId"] = request_id
    record.update(extra)
    return record


def write_jsonl(path: Path, lines: List[Any]) -> Path:
    """Write records (dicts) or raw strings, one per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(line if isinstance(line, str) else json.dumps(line))
            f.write("\n")
    return path


@pytest.fixture
def test_config():
    """Validated configuration used across tests."""
    return parse_config(TEST_CONFIG)
