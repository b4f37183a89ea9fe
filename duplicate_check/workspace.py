"""
Submission acquisition from lab workspaces.

Student code lives in one directory per lab, with one sub-directory per
student:

    <root>/workspace-<lab_id>/<user_id>/<any files>

Only files whose extension belongs to the requested language are read.
"""
import logging
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from .errors import SubmissionsNotFound
from .tokenizer import Language

logger = logging.getLogger(__name__)

# Lab used by the test hooks below
TEST_LAB_ID = "0"
TEST_USER_IDS = ("1", "2")
TEST_FILE_NAMES = {
    Language.PYTHON3: "1.py",
    Language.CPP: "1.cpp",
    Language.JAVA: "Solution.java",
}


@dataclass
class RawSubmission:
    """Source files of one student, not yet tokenized."""
    submission_id: str
    files: list[tuple[str, str]] = field(default_factory=list)  # (relative path, text)


class SubmissionSource(ABC):
    """Provides the submissions of a lab."""

    @abstractmethod
    def list_submissions(self, lab_id: str, language: Language) -> list[RawSubmission]:
        """
        List every student submission of a lab.

        :param lab_id: Lab identifier
        :param language: Only files of this language are returned
        :return: Submissions ordered by id
        :raises SubmissionsNotFound: The lab has no submissions
        """
        pass


def _is_hidden(path: Path) -> bool:
    return path.name.startswith(".")


class WorkspaceSubmissionSource(SubmissionSource):
    """Reads submissions from lab workspace directories."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def lab_dir(self, lab_id: str) -> Path:
        return self.root / f"workspace-{lab_id}"

    def list_submissions(self, lab_id: str, language: Language) -> list[RawSubmission]:
        if not lab_id or "/" in lab_id or "\\" in lab_id or ".." in lab_id:
            raise SubmissionsNotFound(f"Invalid lab id: {lab_id!r}")

        lab_dir = self.lab_dir(lab_id)
        if not lab_dir.is_dir():
            logger.info(f"Lab directory not found: {lab_dir}")
            raise SubmissionsNotFound(f"Lab directory for lab {lab_id} is not found")

        student_dirs = sorted(
            (p for p in lab_dir.iterdir() if p.is_dir() and not _is_hidden(p)),
            key=lambda p: p.name,
        )
        if not student_dirs:
            raise SubmissionsNotFound(f"Lab {lab_id} has no submissions")

        submissions = []
        for student_dir in student_dirs:
            submissions.append(RawSubmission(
                submission_id=student_dir.name,
                files=self._read_files(student_dir, language),
            ))

        logger.info(f"Found {len(submissions)} submission(s) for lab {lab_id} in {lab_dir}")
        return submissions

    def _read_files(self, student_dir: Path, language: Language) -> list[tuple[str, str]]:
        files = []
        for path in sorted(student_dir.rglob("*")):
            relative = path.relative_to(student_dir)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if not path.is_file() or path.suffix.lower() not in language.extensions:
                continue
            try:
                content = path.read_bytes()
            except OSError as e:
                logger.warning(f"Cannot read {path}: {e}")
                continue
            files.append((relative.as_posix(), content.decode("utf-8", errors="replace")))
        return files


def generate_test_submissions(root: Path, code: str, language: Language | str) -> Path:
    """
    Write a test lab where two students submitted the same code.

    Args:
        root: Workspace root
        code: Source code written for both students
        language: Language of the code (decides the file name)

    Returns:
        Path of the test lab directory
    """
    language = Language.parse(language)
    lab_dir = WorkspaceSubmissionSource(root).lab_dir(TEST_LAB_ID)
    for user_id in TEST_USER_IDS:
        student_dir = lab_dir / user_id
        student_dir.mkdir(parents=True, exist_ok=True)
        (student_dir / TEST_FILE_NAMES[language]).write_text(code, encoding="utf-8")
    logger.info(f"Generated test submissions in {lab_dir}")
    return lab_dir


def remove_test_submissions(root: Path) -> None:
    """Delete the test lab written by generate_test_submissions."""
    lab_dir = WorkspaceSubmissionSource(root).lab_dir(TEST_LAB_ID)
    if lab_dir.exists():
        shutil.rmtree(lab_dir)
        logger.info(f"Removed test submissions in {lab_dir}")
