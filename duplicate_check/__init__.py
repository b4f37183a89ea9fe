"""
Duplicate check engine for lab submissions.

This package finds near-duplicate code among the submissions of a lab:
- tokenizer: Source text to position-tagged tokens per language
- submission: Student files merged into one token stream
- matcher: Greedy String Tiling between two submissions
- scorer: Matched token coverage as a 0-100 similarity
- aggregator: All pairs of a lab collected into one ranked run
- report: Matched region spans for rendering
- workspace: Reading submissions from lab workspaces
- store: Persisting runs and report entries
- checker: Orchestrator for the whole duplicate check
"""

from .errors import (
    DuplicateCheckError,
    UnsupportedLanguage,
    MalformedSource,
    SubmissionsNotFound,
    NotFound,
    StorageFailure,
)

from .tokenizer import (
    Language,
    Token,
    TokenKind,
    TokenizerOptions,
    tokenize_source,
)

from .submission import (
    Submission,
    SubmissionFile,
    SourceWarning,
    build_submission,
    submission_sort_key,
)

from .matcher import (
    Tile,
    Match,
    MatchRegion,
    greedy_string_tiling,
    match_submissions,
)

from .scorer import (
    similarity_percent,
    matched_token_count,
    score_pair,
)

from .aggregator import (
    Comparison,
    ComparisonRun,
    RunIdGenerator,
    compare_pair,
    rank_comparisons,
    run_comparisons,
)

from .models import (
    RegionSpan,
    RegionPair,
    ComparisonRef,
    ReportEntry,
    ComparisonSummary,
    RunOverview,
)

from .report import (
    build_report_entry,
    build_run_overview,
    build_report_payloads,
    display_name_for,
    index_from_display_name,
)

from .workspace import (
    RawSubmission,
    SubmissionSource,
    WorkspaceSubmissionSource,
    generate_test_submissions,
    remove_test_submissions,
)

from .store import (
    ReportStore,
    InMemoryReportStore,
    FileSystemReportStore,
)

from .config import (
    DuplicateCheckConfig,
    load_config,
)

from .checker import DuplicateChecker

__all__ = [
    # errors
    "DuplicateCheckError",
    "UnsupportedLanguage",
    "MalformedSource",
    "SubmissionsNotFound",
    "NotFound",
    "StorageFailure",
    # tokenizer
    "Language",
    "Token",
    "TokenKind",
    "TokenizerOptions",
    "tokenize_source",
    # submission
    "Submission",
    "SubmissionFile",
    "SourceWarning",
    "build_submission",
    "submission_sort_key",
    # matcher
    "Tile",
    "Match",
    "MatchRegion",
    "greedy_string_tiling",
    "match_submissions",
    # scorer
    "similarity_percent",
    "matched_token_count",
    "score_pair",
    # aggregator
    "Comparison",
    "ComparisonRun",
    "RunIdGenerator",
    "compare_pair",
    "rank_comparisons",
    "run_comparisons",
    # models
    "RegionSpan",
    "RegionPair",
    "ComparisonRef",
    "ReportEntry",
    "ComparisonSummary",
    "RunOverview",
    # report
    "build_report_entry",
    "build_run_overview",
    "build_report_payloads",
    "display_name_for",
    "index_from_display_name",
    # workspace
    "RawSubmission",
    "SubmissionSource",
    "WorkspaceSubmissionSource",
    "generate_test_submissions",
    "remove_test_submissions",
    # store
    "ReportStore",
    "InMemoryReportStore",
    "FileSystemReportStore",
    # config
    "DuplicateCheckConfig",
    "load_config",
    # checker
    "DuplicateChecker",
]
