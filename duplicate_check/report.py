"""
Report data building.

Turns the matches of a comparison into file/line/column spans for both
submissions. Rendering the spans as HTML is left to the consumer.
"""
import re
from typing import Mapping

from .aggregator import Comparison, ComparisonRun
from .errors import NotFound
from .matcher import MatchRegion
from .models import ComparisonRef, ComparisonSummary, RegionPair, RegionSpan, ReportEntry, RunOverview
from .submission import Submission

OVERVIEW_KEY = "overview"

_DISPLAY_NAME_RE = re.compile(r"^match(\d+)\.html$")


def display_name_for(index: int) -> str:
    """
    File name under which a comparison is shown.

    Examples:
        >>> display_name_for(3)
        'match3.html'
    """
    return f"match{index}.html"


def index_from_display_name(display_name: str) -> int:
    """
    Parse a comparison index back from its display name.

    Raises:
        NotFound: The name is not of the form match<index>.html

    Examples:
        >>> index_from_display_name("match12.html")
        12
    """
    match = _DISPLAY_NAME_RE.match(display_name)
    if not match:
        raise NotFound(f"Unknown report file: {display_name}")
    return int(match.group(1))


def entry_key(index: int) -> str:
    """Report store key of a comparison's entry."""
    return f"match{index}"


def resolve_region(submission: Submission, region: MatchRegion) -> RegionSpan:
    """Resolve a token range to the source span it covers."""
    first_file, first_offset = submission.locate(region.start_token)
    last_file, last_offset = submission.locate(region.end_token - 1)
    first_token = first_file.tokens[first_offset]
    last_token = last_file.tokens[last_offset]
    return RegionSpan(
        submission_id=submission.id,
        file=first_file.path,
        start_line=first_token.line,
        start_column=first_token.column,
        end_line=last_token.line,
        end_column=last_token.column + last_token.length,
        tokens=region.length,
    )


def build_report_entry(
    run: ComparisonRun,
    index: int,
    submissions: Mapping[str, Submission],
) -> ReportEntry:
    """
    Build the report entry of the comparison at `index` in a run.

    Args:
        run: Completed comparison run
        index: Position of the comparison in the ranked run
        submissions: Submissions of the run, keyed by id

    Returns:
        ReportEntry with one region pair per match, in match order

    Raises:
        NotFound: No comparison at this index
    """
    if index < 0 or index >= len(run.comparisons):
        raise NotFound(f"Run {run.run_id} of lab {run.lab_id} has no comparison {index}")

    comparison: Comparison = run.comparisons[index]
    submission_a = submissions[comparison.submission_a]
    submission_b = submissions[comparison.submission_b]

    regions = [
        RegionPair(
            first=resolve_region(submission_a, match.first),
            second=resolve_region(submission_b, match.second),
        )
        for match in comparison.matches
    ]

    return ReportEntry(
        comparison=ComparisonRef(lab_id=run.lab_id, run_id=run.run_id, index=index),
        submission_a=comparison.submission_a,
        submission_b=comparison.submission_b,
        similarity=comparison.similarity,
        similarity_a=comparison.similarity_a,
        similarity_b=comparison.similarity_b,
        display_name=display_name_for(index),
        regions=regions,
    )


def build_run_overview(run: ComparisonRun) -> RunOverview:
    """Ranked list of a run's comparisons with their report file names."""
    summaries = []
    for index, comparison in enumerate(run.comparisons):
        html_file_name = display_name_for(index)
        summaries.append(ComparisonSummary(
            index=index,
            user_id_1=comparison.submission_a,
            user_id_2=comparison.submission_b,
            similarity=comparison.similarity,
            html_file_name=html_file_name,
            url=f"{html_file_name}?ts={run.run_id}",
        ))

    return RunOverview(
        lab_id=run.lab_id,
        run_id=run.run_id,
        language=run.language.value if run.language else None,
        minimum_token_match=run.minimum_token_match,
        created_at=run.created_at,
        comparisons=summaries,
        warnings=[warning.message for warning in run.warnings],
    )


def build_report_payloads(run: ComparisonRun, submissions: Mapping[str, Submission]) -> dict[str, str]:
    """Serialize the overview and every report entry of a run, keyed for the report store."""
    payloads = {OVERVIEW_KEY: build_run_overview(run).model_dump_json()}
    for index in range(len(run.comparisons)):
        payloads[entry_key(index)] = build_report_entry(run, index, submissions).model_dump_json()
    return payloads
