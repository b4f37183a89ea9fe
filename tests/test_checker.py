"""
Unit tests for duplicate_check/checker.py

Tests the full duplicate check: workspace -> run -> stored report entries.
"""
from unittest.mock import MagicMock

import pytest

from duplicate_check.aggregator import RunIdGenerator
from duplicate_check.checker import DuplicateChecker
from duplicate_check.config import DuplicateCheckConfig
from duplicate_check.errors import (
    NotFound,
    StorageFailure,
    SubmissionsNotFound,
    UnsupportedLanguage,
)
from duplicate_check.store import FileSystemReportStore, InMemoryReportStore
from duplicate_check.workspace import WorkspaceSubmissionSource


class TestRunDuplicateCheck:
    """Tests for DuplicateChecker.run_duplicate_check."""

    def test_scenario(self, checker, scenario_lab):
        run = checker.run_duplicate_check("7", "python3", 3)

        assert [(c.submission_a, c.submission_b, c.similarity) for c in run.comparisons] == [
            ("1", "2", 100),
            ("1", "3", 21),
            ("2", "3", 21),
        ]

        overview = checker.get_run_overview("7", run.run_id)
        assert overview.run_id == run.run_id
        assert [c.url for c in overview.comparisons] == [
            f"match{i}.html?ts={run.run_id}" for i in range(3)
        ]

    def test_default_threshold_from_config(self, tmp_path, memory_store, scenario_lab):
        checker = DuplicateChecker(
            WorkspaceSubmissionSource(tmp_path),
            memory_store,
            DuplicateCheckConfig(minimum_token_match=3),
        )
        run = checker.run_duplicate_check("7", "python3")
        assert run.minimum_token_match == 3

    def test_new_run_every_call(self, checker, scenario_lab):
        """Runs are never overwritten and are deterministic apart from their id."""
        first = checker.run_duplicate_check("7", "python3", 2)
        second = checker.run_duplicate_check("7", "python3", 2)

        assert first.run_id != second.run_id
        assert first.comparisons == second.comparisons
        assert checker.get_run_overview("7", first.run_id).run_id == first.run_id

    def test_created_at_follows_run_id(self, tmp_path, memory_store, scenario_lab):
        checker = DuplicateChecker(
            WorkspaceSubmissionSource(tmp_path),
            memory_store,
            run_ids=RunIdGenerator(clock=lambda: 1700000000.0),
        )
        run = checker.run_duplicate_check("7", "python3")
        assert run.run_id == "1700000000000"
        assert run.created_at.timestamp() == 1700000000.0

    def test_unsupported_language_before_reading(self, memory_store):
        """An unknown language fails without touching the workspace."""
        source = MagicMock()
        checker = DuplicateChecker(source, memory_store)

        with pytest.raises(UnsupportedLanguage):
            checker.run_duplicate_check("7", "cobol")
        source.list_submissions.assert_not_called()

    def test_missing_lab(self, checker):
        with pytest.raises(SubmissionsNotFound):
            checker.run_duplicate_check("404", "python3")

    def test_empty_student_directory(self, checker, write_lab):
        """A student without code gets similarity 0 against everyone."""
        write_lab("9", {"1": {"main.py": "x = 1"}, "2": {"main.py": "x = 1"}, "3": {}})

        run = checker.run_duplicate_check("9", "python3", 1)

        scores = {(c.submission_a, c.submission_b): c.similarity for c in run.comparisons}
        assert scores == {("1", "2"): 100, ("1", "3"): 0, ("2", "3"): 0}

    def test_malformed_file_reported(self, checker, write_lab):
        write_lab("9", {"1": {"main.py": "s = 'open\n"}, "2": {"main.py": "x = 1"}})

        run = checker.run_duplicate_check("9", "python3", 1)

        assert len(run.warnings) == 1
        overview = checker.get_run_overview("9", run.run_id)
        assert len(overview.warnings) == 1
        assert "main.py" in overview.warnings[0]

    def test_storage_failure_propagates(self, tmp_path, scenario_lab):
        store = MagicMock()
        store.put.side_effect = StorageFailure("disk full")
        checker = DuplicateChecker(WorkspaceSubmissionSource(tmp_path), store)

        with pytest.raises(StorageFailure, match="disk full"):
            checker.run_duplicate_check("7", "python3")

    def test_invalid_threshold(self, checker, scenario_lab):
        with pytest.raises(ValueError):
            checker.run_duplicate_check("7", "python3", 0)


class TestGetReportEntry:
    """Tests for reading stored report entries."""

    def test_entry_matches_run(self, checker, scenario_lab):
        run = checker.run_duplicate_check("7", "python3", 3)

        entry = checker.get_report_entry("7", run.run_id, 1)

        assert (entry.submission_a, entry.submission_b) == ("1", "3")
        assert entry.similarity == 21
        assert entry.display_name == "match1.html"
        (region,) = entry.regions
        assert region.first.tokens == 3

    def test_idempotent(self, checker, scenario_lab):
        run = checker.run_duplicate_check("7", "python3", 3)
        assert checker.get_report_entry("7", run.run_id, 0) == checker.get_report_entry("7", run.run_id, 0)

    def test_by_display_name(self, checker, scenario_lab):
        run = checker.run_duplicate_check("7", "python3", 3)
        assert checker.get_report_entry_by_name("7", run.run_id, "match2.html") == \
            checker.get_report_entry("7", run.run_id, 2)

    def test_unknown_run(self, checker, scenario_lab):
        with pytest.raises(NotFound):
            checker.get_report_entry("7", "123", 0)
        with pytest.raises(NotFound):
            checker.get_run_overview("7", "123")

    def test_unknown_index(self, checker, scenario_lab):
        run = checker.run_duplicate_check("7", "python3", 3)
        with pytest.raises(NotFound):
            checker.get_report_entry("7", run.run_id, 3)
        with pytest.raises(NotFound):
            checker.get_report_entry("7", run.run_id, -1)

    def test_remove_results(self, checker, scenario_lab):
        run = checker.run_duplicate_check("7", "python3", 3)
        checker.remove_results("7", run.run_id)
        with pytest.raises(NotFound):
            checker.get_run_overview("7", run.run_id)


class TestFromConfig:
    """Tests for DuplicateChecker.from_config."""

    def test_memory_store(self, tmp_path):
        checker = DuplicateChecker.from_config(DuplicateCheckConfig(workspace_root=tmp_path, storage="memory"))
        assert isinstance(checker.store, InMemoryReportStore)
        assert checker.source.root == tmp_path

    def test_filesystem_store(self, tmp_path, scenario_lab):
        config = DuplicateCheckConfig(workspace_root=tmp_path, results_root=tmp_path / "results")
        checker = DuplicateChecker.from_config(config)

        run = checker.run_duplicate_check("7", "python3", 3)

        assert isinstance(checker.store, FileSystemReportStore)
        assert (tmp_path / "results" / "7" / run.run_id / "overview.json").exists()
        assert checker.get_report_entry("7", run.run_id, 0).similarity == 100

    def test_normalization_options(self, tmp_path, memory_store, write_lab):
        """With identifier normalization renamed variables still match."""
        write_lab("9", {"1": {"m.py": "a = b + c"}, "2": {"m.py": "x = y + z"}})
        config = DuplicateCheckConfig(normalize_identifiers=True)
        checker = DuplicateChecker(WorkspaceSubmissionSource(tmp_path), memory_store, config)

        run = checker.run_duplicate_check("9", "python3", 1)

        assert run.comparisons[0].similarity == 100
