"""
Comparison run aggregation.

This module compares every unordered pair of a lab's submissions and
collects the results into one immutable, ranked ComparisonRun.
"""
import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import combinations
from typing import Callable, Sequence

from .matcher import Match, match_submissions
from .scorer import score_pair
from .submission import SourceWarning, Submission, submission_sort_key
from .tokenizer import Language

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Comparison:
    """Result of comparing two submissions (submission_a sorts before submission_b)."""
    submission_a: str
    submission_b: str
    matches: tuple[Match, ...]
    similarity: int  # Share of submission_b found in submission_a
    similarity_a: int
    similarity_b: int

    @property
    def matched_tokens(self) -> int:
        return sum(match.length for match in self.matches)


@dataclass(frozen=True)
class ComparisonRun:
    """One immutable execution of the duplicate check over a lab."""
    run_id: str
    lab_id: str
    language: Language | None
    minimum_token_match: int
    comparisons: tuple[Comparison, ...]
    created_at: datetime
    warnings: tuple[SourceWarning, ...] = field(default=())


class RunIdGenerator:
    """
    Issues millisecond timestamp run ids, strictly increasing per instance.

    Two runs started in the same millisecond get distinct ids, so stored
    results of concurrent runs for the same lab never share a key.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now = int(self._clock() * 1000)
            self._last = max(now, self._last + 1)
            return str(self._last)


def compare_pair(first: Submission, second: Submission, minimum_token_match: int) -> Comparison:
    """
    Compare two submissions and score the result.

    The pair is stored in canonical order regardless of argument order.
    """
    if submission_sort_key(second.id) < submission_sort_key(first.id):
        first, second = second, first

    matches = match_submissions(first, second, minimum_token_match)
    similarity_a, similarity_b = score_pair(
        matches, first.id, first.token_count, second.id, second.token_count
    )
    return Comparison(
        submission_a=first.id,
        submission_b=second.id,
        matches=tuple(matches),
        similarity=similarity_b,
        similarity_a=similarity_a,
        similarity_b=similarity_b,
    )


def rank_comparisons(comparisons: Sequence[Comparison]) -> list[Comparison]:
    """Order by descending similarity, then by the two submission ids."""
    return sorted(
        comparisons,
        key=lambda c: (
            -c.similarity,
            submission_sort_key(c.submission_a),
            submission_sort_key(c.submission_b),
        ),
    )


def run_comparisons(
    lab_id: str,
    submissions: Sequence[Submission],
    minimum_token_match: int,
    run_id: str,
    created_at: datetime | None = None,
    include_zero_similarity: bool = True,
    max_workers: int | None = None,
) -> ComparisonRun:
    """
    Compare all unordered pairs of submissions of a lab.

    Pairs are compared on a thread pool; the run is assembled only after
    every pair has finished. If any pair fails, the exception propagates
    and no run is produced.

    Args:
        lab_id: Lab identifier
        submissions: Submissions of one language, unique ids
        minimum_token_match: Shortest token run that counts as a match
        run_id: Identifier of the new run
        created_at: Creation time of the run (default: now, UTC)
        include_zero_similarity: Keep pairs with similarity 0
        max_workers: Thread pool size (None = executor default)

    Returns:
        ComparisonRun with ranked comparisons

    Raises:
        ValueError: Invalid threshold, duplicate ids or mixed languages
    """
    if minimum_token_match < 1:
        raise ValueError(f"minimum_token_match must be at least 1, got {minimum_token_match}")

    ordered = sorted(submissions, key=lambda s: submission_sort_key(s.id))
    ids = [submission.id for submission in ordered]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate submission ids in lab {lab_id}")
    languages = {submission.language for submission in ordered}
    if len(languages) > 1:
        raise ValueError(f"Submissions of lab {lab_id} mix languages: {sorted(lang.value for lang in languages)}")
    language = languages.pop() if languages else None

    pairs = list(combinations(ordered, 2))
    logger.info(f"Run {run_id} for lab {lab_id}: comparing {len(pairs)} pair(s) of {len(ordered)} submission(s)")

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(compare_pair, first, second, minimum_token_match)
            for first, second in pairs
        ]
        # Barrier: result() re-raises the first failure, the executor still joins all
        comparisons = [future.result() for future in futures]

    if not include_zero_similarity:
        comparisons = [c for c in comparisons if c.similarity > 0]

    warnings = tuple(warning for submission in ordered for warning in submission.warnings)
    run = ComparisonRun(
        run_id=run_id,
        lab_id=lab_id,
        language=language,
        minimum_token_match=minimum_token_match,
        comparisons=tuple(rank_comparisons(comparisons)),
        created_at=created_at or datetime.now(timezone.utc),
        warnings=warnings,
    )
    logger.info(f"Run {run_id} for lab {lab_id}: {len(run.comparisons)} comparison(s), {len(warnings)} warning(s)")
    return run
