"""
Streaming ingestion of Claude usage logs.

Discovers JSONL logs, decodes and validates them in bounded memory and
merges the results into one chronologically ordered entry stream.
"""

from .pipeline import (
    IngestionReport,
    IngestionResult,
    PipelineOptions,
    PipelineResult,
    load_usage_data,
    run_pipeline,
    stream_usage_data,
)

__all__ = [
    "IngestionReport",
    "IngestionResult",
    "PipelineOptions",
    "PipelineResult",
    "load_usage_data",
    "run_pipeline",
    "stream_usage_data",
]
