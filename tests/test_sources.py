"""
Unit tests for log file discovery.
"""

import logging

from claude_usage.ingest.sources import enumerate_sources
from conftest import write_jsonl


class TestEnumerateSources:
    """Test recursive discovery of JSONL files."""

    def test_finds_jsonl_files_recursively(self, tmp_path):
        write_jsonl(tmp_path / "top.jsonl", [])
        write_jsonl(tmp_path / "project" / "session.jsonl", [])
        write_jsonl(tmp_path / "project" / "notes.txt", [])

        scan = enumerate_sources([tmp_path])

        assert scan.files == sorted([
            tmp_path / "project" / "session.jsonl",
            tmp_path / "top.jsonl",
        ])
        assert scan.skipped_roots == []

    def test_depth_is_bounded(self, tmp_path):
        """Files more than three components below the root are not visited."""
        write_jsonl(tmp_path / "a" / "b" / "depth3.jsonl", [])
        write_jsonl(tmp_path / "a" / "b" / "c" / "depth4.jsonl", [])

        scan = enumerate_sources([tmp_path])

        assert [p.name for p in scan.files] == ["depth3.jsonl"]

    def test_missing_root_is_skipped_with_warning(self, tmp_path, caplog):
        """A bad root never fails the whole enumeration."""
        write_jsonl(tmp_path / "good" / "s.jsonl", [])
        missing = tmp_path / "does-not-exist"

        with caplog.at_level(logging.WARNING):
            scan = enumerate_sources([missing, tmp_path / "good"])

        assert [p.name for p in scan.files] == ["s.jsonl"]
        assert scan.skipped_roots == [str(missing)]
        assert "does-not-exist" in caplog.text

    def test_file_root_is_skipped(self, tmp_path):
        root = write_jsonl(tmp_path / "not-a-dir.jsonl", [])

        scan = enumerate_sources([root])

        assert scan.files == []
        assert scan.skipped_roots == [str(root)]

    def test_overlapping_roots_are_deduplicated(self, tmp_path):
        write_jsonl(tmp_path / "p" / "s.jsonl", [])

        scan = enumerate_sources([tmp_path, tmp_path / "p"])

        assert scan.files == [tmp_path / "p" / "s.jsonl"]

    def test_discovery_order_is_deterministic(self, tmp_path):
        for name in ["c", "a", "b"]:
            write_jsonl(tmp_path / name / "log.jsonl", [])

        first = enumerate_sources([tmp_path]).files
        second = enumerate_sources([tmp_path]).files

        assert first == second
        assert [p.parent.name for p in first] == ["a", "b", "c"]
