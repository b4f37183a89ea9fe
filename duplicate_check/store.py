"""
Report storage.

Stores the serialized payloads of comparison runs under (lab_id, run_id, key).
Runs are append-only: a run's payloads are written once and only read or
removed afterwards.
"""
import logging
import os
import shutil
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping

from .errors import NotFound, StorageFailure

logger = logging.getLogger(__name__)


class ReportStore(ABC):
    """Keyed blob store for run payloads."""

    @abstractmethod
    def put(self, lab_id: str, run_id: str, payloads: Mapping[str, str]) -> None:
        """
        Store all payloads of a run. Either every payload becomes readable
        or none does.

        :param lab_id: Lab identifier
        :param run_id: Run identifier
        :param payloads: Payload text by key
        :raises StorageFailure: The run exists already or could not be written
        """
        pass

    @abstractmethod
    def get(self, lab_id: str, run_id: str, key: str) -> str:
        """
        Read one payload.

        :raises NotFound: No such run or key
        """
        pass

    @abstractmethod
    def remove(self, lab_id: str, run_id: str | None = None) -> None:
        """Delete one run, or every run of a lab when run_id is None."""
        pass


class InMemoryReportStore(ReportStore):
    """Report store kept in process memory."""

    def __init__(self):
        self._payloads: dict[tuple[str, str], dict[str, str]] = {}
        self._lock = threading.Lock()

    def put(self, lab_id: str, run_id: str, payloads: Mapping[str, str]) -> None:
        with self._lock:
            if (lab_id, run_id) in self._payloads:
                raise StorageFailure(f"Run {run_id} of lab {lab_id} is already stored")
            self._payloads[(lab_id, run_id)] = dict(payloads)

    def get(self, lab_id: str, run_id: str, key: str) -> str:
        with self._lock:
            run_payloads = self._payloads.get((lab_id, run_id))
            if run_payloads is None or key not in run_payloads:
                raise NotFound(f"No payload {key!r} for run {run_id} of lab {lab_id}")
            return run_payloads[key]

    def remove(self, lab_id: str, run_id: str | None = None) -> None:
        with self._lock:
            for stored_lab, stored_run in list(self._payloads):
                if stored_lab == lab_id and run_id in (None, stored_run):
                    del self._payloads[(stored_lab, stored_run)]


class FileSystemReportStore(ReportStore):
    """
    Report store on the local filesystem.

    Layout: <root>/<lab_id>/<run_id>/<key>.json. A run is written into a
    hidden temporary directory next to its final place and renamed into
    place in one step, so readers see either the whole run or nothing.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    @staticmethod
    def _check_component(part: str) -> str:
        # Leading dots are reserved for temporary run directories
        if not part or part.startswith(".") or "/" in part or "\\" in part:
            raise ValueError(f"Invalid path component: {part!r}")
        return part

    def _lab_dir(self, lab_id: str) -> Path:
        return self.root / self._check_component(lab_id)

    def _run_dir(self, lab_id: str, run_id: str) -> Path:
        return self._lab_dir(lab_id) / self._check_component(run_id)

    def _payload_path(self, lab_id: str, run_id: str, key: str) -> Path:
        return self._run_dir(lab_id, run_id) / f"{self._check_component(key)}.json"

    def put(self, lab_id: str, run_id: str, payloads: Mapping[str, str]) -> None:
        """
        Store all payloads of a run at once.

        :raises ValueError: Invalid lab id, run id or payload key
        :raises StorageFailure: The run exists already or could not be written
        """
        run_dir = self._run_dir(lab_id, run_id)
        for key in payloads:
            self._check_component(key)
        if run_dir.exists():
            raise StorageFailure(f"Run {run_id} of lab {lab_id} is already stored")

        temp_dir = None
        try:
            run_dir.parent.mkdir(parents=True, exist_ok=True)
            temp_dir = Path(tempfile.mkdtemp(dir=run_dir.parent, prefix=f".tmp-{run_id}-"))
            for key, payload in payloads.items():
                (temp_dir / f"{key}.json").write_text(payload, encoding="utf-8")
            os.replace(temp_dir, run_dir)
        except OSError as e:
            if temp_dir is not None:
                shutil.rmtree(temp_dir, ignore_errors=True)
            logger.error(f"Failed to store run {run_id} of lab {lab_id} in {run_dir}: {e}")
            raise StorageFailure(f"Failed to store run {run_id} of lab {lab_id}: {e}") from e
        logger.info(f"Stored {len(payloads)} payload(s) for run {run_id} of lab {lab_id} in {run_dir}")

    def get(self, lab_id: str, run_id: str, key: str) -> str:
        try:
            path = self._payload_path(lab_id, run_id, key)
        except ValueError as e:
            raise NotFound(str(e)) from e
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFound(f"No payload {key!r} for run {run_id} of lab {lab_id}")
        except OSError as e:
            raise StorageFailure(f"Failed to read {path}: {e}") from e

    def remove(self, lab_id: str, run_id: str | None = None) -> None:
        target = self._lab_dir(lab_id) if run_id is None else self._run_dir(lab_id, run_id)
        if not target.exists():
            return
        try:
            shutil.rmtree(target)
        except OSError as e:
            raise StorageFailure(f"Failed to remove {target}: {e}") from e
        logger.info(f"Removed stored results at {target}")
