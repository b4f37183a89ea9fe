"""Tests for the submission model."""
import pytest

from duplicate_check.errors import UnsupportedLanguage
from duplicate_check.submission import build_submission, submission_sort_key
from duplicate_check.tokenizer import Language


class TestBuildSubmission:
    """Tests for build_submission."""

    def test_files_sorted_and_concatenated(self):
        """Files are tokenized in path order and concatenated."""
        submission = build_submission("5", "python3", [
            ("b.py", "x = 1"),
            ("a.py", "y = 2\nz = 3"),
        ])

        assert [f.path for f in submission.files] == ["a.py", "b.py"]
        assert submission.token_count == 9
        assert submission.file_offsets == (0, 6)
        assert [t.text for t in submission.tokens] == ["y", "=", "2", "z", "=", "3", "x", "=", "1"]
        assert submission.language == Language.PYTHON3

    def test_file_boundaries(self):
        """The last token of every file is a boundary."""
        submission = build_submission("5", "python3", [("a.py", "y = 2\nz = 3"), ("b.py", "x = 1")])
        assert submission.file_boundaries == frozenset({5, 8})

    def test_malformed_file_skipped(self):
        """A file that cannot be tokenized is skipped with a warning."""
        submission = build_submission("5", "python3", [
            ("bad.py", "s = 'x\n"),
            ("ok.py", "a = 1"),
        ])

        assert [f.path for f in submission.files] == ["ok.py"]
        assert submission.token_count == 3
        assert len(submission.warnings) == 1
        assert submission.warnings[0].path == "bad.py"
        assert submission.warnings[0].submission_id == "5"
        assert "unterminated" in submission.warnings[0].message

    def test_empty_submission(self):
        """A submission without files is valid and has no tokens."""
        submission = build_submission("5", "cpp", [])
        assert submission.token_count == 0
        assert submission.files == ()
        assert submission.file_boundaries == frozenset()

    def test_unsupported_language(self):
        """Unknown languages fail before any file is read."""
        with pytest.raises(UnsupportedLanguage):
            build_submission("5", "brainfuck", [("a.bf", "+")])


class TestLocate:
    """Tests for mapping token indices back to files."""

    @pytest.fixture
    def submission(self):
        return build_submission("5", "python3", [
            ("a.py", ""),
            ("b.py", "x = 1"),
            ("c.py", "y = 2"),
        ])

    def test_empty_file_skipped(self, submission):
        """Index 0 belongs to the first non-empty file."""
        submission_file, offset = submission.locate(0)
        assert (submission_file.path, offset) == ("b.py", 0)

    def test_second_file(self, submission):
        """Indices past the first file map into the next one."""
        submission_file, offset = submission.locate(4)
        assert (submission_file.path, offset) == ("c.py", 1)
        assert submission.file_of(3) == "c.py"

    def test_out_of_range(self, submission):
        """Indices outside the stream raise IndexError."""
        with pytest.raises(IndexError):
            submission.locate(6)
        with pytest.raises(IndexError):
            submission.locate(-1)


class TestSubmissionSortKey:
    """Tests for submission_sort_key."""

    def test_numeric_ids_compare_as_numbers(self):
        assert sorted(["10", "9", "100"], key=submission_sort_key) == ["9", "10", "100"]

    def test_numeric_before_names(self):
        assert sorted(["bob", "2", "alice"], key=submission_sort_key) == ["2", "alice", "bob"]
