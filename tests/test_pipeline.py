"""
End-to-end tests for the ingestion pipeline.
"""

import math
from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from claude_usage.config.loader import ConfigurationError
from claude_usage.ingest import scheduler as scheduler_module
from claude_usage.ingest.errors import FileReadError
from claude_usage.ingest.pipeline import (
    PipelineOptions,
    load_usage_data,
    run_pipeline,
    stream_usage_data,
)
from conftest import assistant_record, write_jsonl

OPUS = "claude-opus-4-20250514"


def _two_file_tree(root):
    """File A holds a 10:00 sonnet request, file B a 09:00 opus request and a blank line."""
    write_jsonl(root / "project" / "A.jsonl", [
        assistant_record(timestamp="2024-01-15T10:00:00Z", request_id="A1"),
    ])
    write_jsonl(root / "project" / "B.jsonl", [
        assistant_record(
            timestamp="2024-01-15T09:00:00Z",
            model=OPUS,
            input_tokens=800,
            output_tokens=400,
            request_id="B1",
        ),
        "",
    ])
    return root


class TestRunPipeline:
    """Test the complete ingest-and-aggregate run."""

    def test_two_files_are_merged_chronologically(self, tmp_path, test_config):
        root = _two_file_tree(tmp_path)

        result = run_pipeline(test_config, roots=[root])

        assert [e.id for e in result.entries] == ["B1", "A1"]
        day = result.summary.daily[date(2024, 1, 15)]
        assert day.total_tokens == 2700
        assert day.conversation_count == 1
        assert day.models == {"claude-3.5-sonnet-20241022", OPUS}
        assert result.report.files_found == 2
        assert result.report.files_processed == 2
        assert result.report.lines_skipped == 1
        assert result.report.entries == 2

    def test_runs_are_idempotent(self, tmp_path, test_config):
        root = _two_file_tree(tmp_path)

        first = run_pipeline(test_config, roots=[root])
        second = run_pipeline(test_config, roots=[root])

        assert first.entries == second.entries
        assert first.summary == second.summary
        assert first.report == second.report

    @pytest.mark.parametrize("batch_size", [1, 2, 5])
    def test_batch_size_does_not_change_the_result(self, tmp_path, test_config, batch_size):
        for i in range(6):
            write_jsonl(tmp_path / f"s{i}.jsonl", [
                assistant_record(timestamp=f"2024-01-{15 + i % 3:02d}T{10 + i}:00:00Z", request_id=f"r{i}"),
            ])
        baseline = run_pipeline(test_config, roots=[tmp_path])

        result = run_pipeline(
            test_config, roots=[tmp_path], options=PipelineOptions(batch_size=batch_size)
        )

        assert result.entries == baseline.entries
        assert result.summary == baseline.summary

    def test_whole_file_loader_gives_the_same_result(self, tmp_path, test_config):
        root = _two_file_tree(tmp_path)

        streamed = run_pipeline(test_config, roots=[root])
        eager = run_pipeline(test_config, roots=[root], options=PipelineOptions(streaming=False))

        assert eager.entries == streamed.entries
        assert eager.summary == streamed.summary

    def test_conservation(self, tmp_path, test_config):
        """Daily totals equal the sum over the entries that survived validation."""
        write_jsonl(tmp_path / "mixed.jsonl", [
            assistant_record(timestamp="2024-01-15T10:00:00Z", request_id="a"),
            assistant_record(timestamp="2024-01-16T10:00:00Z", request_id="b", input_tokens=-1),
            "garbage",
            assistant_record(timestamp="2024-01-17T10:00:00Z", request_id="c", output_tokens=9),
        ])

        result = run_pipeline(test_config, roots=[tmp_path])

        assert [e.id for e in result.entries] == ["a", "c"]
        assert result.summary.total_tokens == sum(e.total_tokens for e in result.entries)
        assert result.report.lines_skipped == 2

    @pytest.mark.parametrize("streaming", [True, False])
    def test_pathological_lines_do_not_abort_the_run(self, tmp_path, test_config, streaming):
        """Deep nesting and non-finite costs are skipped; other files still load."""
        write_jsonl(tmp_path / "a.jsonl", [
            assistant_record(request_id="a1"),
            "[" * 200000,
            '{"type": "assistant", "costUSD": Infinity, "message": {"model": "m", "usage": {}}}',
        ])
        write_jsonl(tmp_path / "b.jsonl", [assistant_record(request_id="b1")])

        result = run_pipeline(
            test_config, roots=[tmp_path], options=PipelineOptions(streaming=streaming)
        )

        assert sorted(e.id for e in result.entries) == ["a1", "b1"]
        assert result.report.files_failed == []
        assert result.report.lines_skipped == 2
        assert math.isfinite(result.summary.total_cost)

    def test_default_roots_come_from_config(self, tmp_path, test_config):
        _two_file_tree(tmp_path)

        with patch.object(type(test_config), "expanded_data_paths", return_value=[tmp_path]):
            result = run_pipeline(test_config)

        assert result.report.entries == 2

    def test_invalid_config_fails_before_reading(self, tmp_path):
        with patch("claude_usage.ingest.pipeline.load_usage_data") as load:
            with pytest.raises(ConfigurationError):
                run_pipeline({"models": {}}, roots=[tmp_path])

        load.assert_not_called()

    def test_missing_timestamps_use_the_clock(self, tmp_path, test_config):
        write_jsonl(tmp_path / "s.jsonl", [assistant_record(timestamp=None)])
        now = datetime(2024, 3, 4, 5, tzinfo=timezone.utc)

        result = run_pipeline(test_config, roots=[tmp_path], clock=lambda: now)

        assert result.entries[0].timestamp == now
        assert list(result.summary.daily) == [date(2024, 3, 4)]


class TestLoadUsageData:
    """Test ingestion failure handling."""

    def test_bad_root_is_skipped(self, tmp_path):
        _two_file_tree(tmp_path / "good")
        missing = tmp_path / "missing"

        result = load_usage_data([missing, tmp_path / "good"])

        assert result.report.skipped_roots == [str(missing)]
        assert len(result.entries) == 2

    def test_no_roots(self):
        result = load_usage_data([])
        assert result.entries == []
        assert result.report.files_found == 0

    def test_failed_file_is_reported(self, tmp_path):
        _two_file_tree(tmp_path)
        original = scheduler_module.iter_file_entries

        async def failing(path, *args, **kwargs):
            if path.name == "A.jsonl":
                raise FileReadError(str(path), OSError("I/O error"))
            async for entry in original(path, *args, **kwargs):
                yield entry

        with patch.object(scheduler_module, "iter_file_entries", failing):
            result = load_usage_data([tmp_path])

        assert [e.id for e in result.entries] == ["B1"]
        assert result.report.files_processed == 1
        assert len(result.report.files_failed) == 1
        assert result.report.files_failed[0].endswith("A.jsonl")

    def test_progress_callback(self, tmp_path):
        _two_file_tree(tmp_path)
        progress = []

        load_usage_data(
            [tmp_path],
            options=PipelineOptions(batch_size=1),
            on_progress=lambda done, total: progress.append((done, total)),
        )

        assert progress == [(1, 2), (2, 2)]

    @pytest.mark.asyncio
    async def test_stream_usage_data_inside_running_loop(self, tmp_path):
        _two_file_tree(tmp_path)

        result = await stream_usage_data([tmp_path])

        assert [e.id for e in result.entries] == ["B1", "A1"]
