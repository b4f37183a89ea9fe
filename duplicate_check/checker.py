"""
Duplicate check orchestrator.

This module provides the DuplicateChecker class that ties the engine
together: reading a lab's submissions, tokenizing them, comparing all
pairs, and persisting the run with its report entries.
"""
import concurrent.futures
import logging
from datetime import datetime, timezone

from .aggregator import ComparisonRun, RunIdGenerator, run_comparisons
from .config import DuplicateCheckConfig
from .errors import NotFound
from .models import ReportEntry, RunOverview
from .report import OVERVIEW_KEY, build_report_payloads, entry_key, index_from_display_name
from .store import FileSystemReportStore, InMemoryReportStore, ReportStore
from .submission import Submission, build_submission
from .tokenizer import Language, TokenizerOptions
from .workspace import SubmissionSource, WorkspaceSubmissionSource

logger = logging.getLogger(__name__)


class DuplicateChecker:
    """
    Runs duplicate checks for labs and serves their stored reports.

    The checker holds no state about earlier runs besides its run id
    generator; everything else lives in the report store. Every call to
    run_duplicate_check produces a new run.
    """

    def __init__(
        self,
        source: SubmissionSource,
        store: ReportStore,
        config: DuplicateCheckConfig | None = None,
        run_ids: RunIdGenerator | None = None,
    ):
        """
        Initialize checker with its collaborators.

        Args:
            source: Where submissions are read from
            store: Where runs and report entries are persisted
            config: Detection settings (default: DuplicateCheckConfig())
            run_ids: Run id generator (default: wall clock milliseconds)
        """
        self.source = source
        self.store = store
        self.config = config or DuplicateCheckConfig()
        self.run_ids = run_ids or RunIdGenerator()

    @classmethod
    def from_config(cls, config: DuplicateCheckConfig) -> "DuplicateChecker":
        """Build a checker reading workspaces and storing results as configured."""
        if config.storage == "memory":
            store = InMemoryReportStore()
        else:
            store = FileSystemReportStore(config.results_root)
        return cls(WorkspaceSubmissionSource(config.workspace_root), store, config)

    def _tokenizer_options(self) -> TokenizerOptions:
        return TokenizerOptions(
            normalize_identifiers=self.config.normalize_identifiers,
            normalize_literals=self.config.normalize_literals,
        )

    def load_submissions(self, lab_id: str, language: Language | str) -> list[Submission]:
        """
        Read and tokenize every submission of a lab.

        Raises:
            UnsupportedLanguage: No tokenizer for the language
            SubmissionsNotFound: The lab has no submissions
        """
        language = Language.parse(language)
        raw_submissions = self.source.list_submissions(lab_id, language)
        options = self._tokenizer_options()

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            return list(executor.map(
                lambda raw: build_submission(raw.submission_id, language, raw.files, options),
                raw_submissions,
            ))

    def run_duplicate_check(
        self,
        lab_id: str,
        language: Language | str,
        minimum_token_match: int | None = None,
    ) -> ComparisonRun:
        """
        Compare all submissions of a lab and persist the result.

        The run is stored only after every comparison has finished and every
        report entry has been built.

        Args:
            lab_id: Lab identifier
            language: Declared language of the lab
            minimum_token_match: Shortest token run counted as a match
                (default: configured value)

        Returns:
            The new ComparisonRun

        Raises:
            UnsupportedLanguage: No tokenizer for the language
            SubmissionsNotFound: The lab has no submissions
            StorageFailure: The run could not be stored
            ValueError: minimum_token_match < 1
        """
        language = Language.parse(language)
        if minimum_token_match is None:
            minimum_token_match = self.config.minimum_token_match
        if minimum_token_match < 1:
            raise ValueError(f"minimum_token_match must be at least 1, got {minimum_token_match}")

        logger.info(f"Duplicate check requested - Lab: {lab_id}, Language: {language.value}, Minimum match: {minimum_token_match}")
        submissions = self.load_submissions(lab_id, language)

        run_id = self.run_ids.next_id()
        run = run_comparisons(
            lab_id,
            submissions,
            minimum_token_match,
            run_id=run_id,
            created_at=datetime.fromtimestamp(int(run_id) / 1000, tz=timezone.utc),
            include_zero_similarity=self.config.include_zero_similarity,
            max_workers=self.config.max_workers,
        )

        payloads = build_report_payloads(run, {s.id: s for s in submissions})
        self.store.put(lab_id, run_id, payloads)
        logger.info(f"Duplicate check for lab {lab_id} stored as run {run_id}")
        return run

    def get_run_overview(self, lab_id: str, run_id: str) -> RunOverview:
        """
        Ranked comparison list of a stored run.

        Raises:
            NotFound: No such run
        """
        return RunOverview.model_validate_json(self.store.get(lab_id, run_id, OVERVIEW_KEY))

    def get_report_entry(self, lab_id: str, run_id: str, comparison_index: int) -> ReportEntry:
        """
        Report entry of one comparison of a stored run.

        Reading has no side effects; the same arguments always return the
        same entry.

        Raises:
            NotFound: No such run or no comparison at this index
        """
        if comparison_index < 0:
            raise NotFound(f"Run {run_id} of lab {lab_id} has no comparison {comparison_index}")
        return ReportEntry.model_validate_json(self.store.get(lab_id, run_id, entry_key(comparison_index)))

    def get_report_entry_by_name(self, lab_id: str, run_id: str, display_name: str) -> ReportEntry:
        """Report entry addressed by its display name, e.g. match0.html."""
        return self.get_report_entry(lab_id, run_id, index_from_display_name(display_name))

    def remove_results(self, lab_id: str, run_id: str | None = None) -> None:
        """Delete stored results of one run, or of every run of a lab."""
        self.store.remove(lab_id, run_id)
