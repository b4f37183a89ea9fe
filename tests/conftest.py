"""
Pytest configuration and shared fixtures for testing.
"""
import pytest
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from duplicate_check import (
    DuplicateChecker,
    DuplicateCheckConfig,
    InMemoryReportStore,
    WorkspaceSubmissionSource,
    build_submission,
)


# Lab from the classic scenario: students 1 and 2 copied, student 3 did not
SCENARIO_CODE = {
    "1": "a=1;b=2;print(a+b)",
    "2": "a=1;b=2;print(a+b)",
    "3": "x=9;y=0;print(x*y)",
}


@pytest.fixture
def write_lab(tmp_path):
    """Factory writing a lab workspace: {user_id: {relative path: code}}."""
    def _write(lab_id: str, students: dict) -> str:
        lab_dir = tmp_path / f"workspace-{lab_id}"
        lab_dir.mkdir(parents=True, exist_ok=True)
        for user_id, files in students.items():
            student_dir = lab_dir / user_id
            student_dir.mkdir(parents=True, exist_ok=True)
            for name, code in files.items():
                path = student_dir / name
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(code, encoding="utf-8")
        return lab_dir
    return _write


@pytest.fixture
def scenario_lab(write_lab):
    """Lab 7 with the three-student Python scenario."""
    return write_lab("7", {user_id: {"main.py": code} for user_id, code in SCENARIO_CODE.items()})


@pytest.fixture
def memory_store():
    return InMemoryReportStore()


@pytest.fixture
def checker(tmp_path, memory_store):
    """Checker reading workspaces under tmp_path and storing results in memory."""
    return DuplicateChecker(
        WorkspaceSubmissionSource(tmp_path),
        memory_store,
        DuplicateCheckConfig(workspace_root=tmp_path, storage="memory"),
    )


@pytest.fixture
def scenario_submissions():
    """The scenario lab as built submissions."""
    return [build_submission(user_id, "python3", [("main.py", code)]) for user_id, code in SCENARIO_CODE.items()]
