"""Tests for report data building."""
import json

import pytest

from duplicate_check.aggregator import run_comparisons
from duplicate_check.errors import NotFound
from duplicate_check.report import (
    OVERVIEW_KEY,
    build_report_entry,
    build_report_payloads,
    build_run_overview,
    display_name_for,
    entry_key,
    index_from_display_name,
)
from duplicate_check.submission import build_submission


@pytest.fixture
def two_file_run():
    submissions = {
        "1": build_submission("1", "python3", [("a.py", "x = 1"), ("b.py", "y = 2")]),
        "2": build_submission("2", "python3", [("main.py", "x = 1\ny = 2")]),
    }
    run = run_comparisons("7", list(submissions.values()), 1, run_id="1700000000000")
    return run, submissions


class TestDisplayName:
    """Tests for display names of report entries."""

    def test_round_trip(self):
        assert display_name_for(0) == "match0.html"
        assert index_from_display_name("match12.html") == 12
        assert entry_key(3) == "match3"

    @pytest.mark.parametrize("name", ["match.html", "matchA.html", "../match1.html", "match1.json", ""])
    def test_unknown_names(self, name):
        with pytest.raises(NotFound):
            index_from_display_name(name)


class TestBuildReportEntry:
    """Tests for build_report_entry."""

    def test_single_file_span(self):
        """A full match covers from the first token to past the last one."""
        submissions = {
            "1": build_submission("1", "python3", [("main.py", "x = 1\ny = 2")]),
            "2": build_submission("2", "python3", [("main.py", "x = 1\ny = 2")]),
        }
        run = run_comparisons("7", list(submissions.values()), 1, run_id="1")

        entry = build_report_entry(run, 0, submissions)

        assert entry.similarity == 100
        assert entry.display_name == "match0.html"
        (region,) = entry.regions
        span = region.first
        assert (span.file, span.start_line, span.start_column) == ("main.py", 1, 1)
        assert (span.end_line, span.end_column) == (2, 6)
        assert span.tokens == 6
        assert region.second.submission_id == "2"

    def test_regions_per_file(self, two_file_run):
        """Regions point into the file each match lies in."""
        run, submissions = two_file_run

        entry = build_report_entry(run, 0, submissions)

        files = sorted((r.first.file, r.first.start_line, r.second.start_line) for r in entry.regions)
        assert files == [("a.py", 1, 1), ("b.py", 1, 2)]
        assert all(r.second.file == "main.py" for r in entry.regions)
        assert entry.comparison.run_id == "1700000000000"
        assert entry.comparison.lab_id == "7"

    def test_index_out_of_range(self, two_file_run):
        run, submissions = two_file_run
        with pytest.raises(NotFound):
            build_report_entry(run, 1, submissions)
        with pytest.raises(NotFound):
            build_report_entry(run, -1, submissions)


class TestRunOverview:
    """Tests for build_run_overview and build_report_payloads."""

    def test_overview_urls(self, two_file_run):
        run, _ = two_file_run

        overview = build_run_overview(run)

        (summary,) = overview.comparisons
        assert summary.user_id_1 == "1"
        assert summary.user_id_2 == "2"
        assert summary.html_file_name == "match0.html"
        assert summary.url == "match0.html?ts=1700000000000"
        assert overview.language == "python3"

    def test_payload_keys(self, scenario_submissions):
        run = run_comparisons("7", scenario_submissions, 3, run_id="1")
        by_id = {s.id: s for s in scenario_submissions}

        payloads = build_report_payloads(run, by_id)

        assert set(payloads) == {OVERVIEW_KEY, "match0", "match1", "match2"}
        overview = json.loads(payloads[OVERVIEW_KEY])
        assert [c["similarity"] for c in overview["comparisons"]] == [100, 21, 21]
