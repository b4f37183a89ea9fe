"""
Similarity scoring for compared submissions.

Similarity of a submission is the share of its tokens covered by matches,
as an integer percentage rounded half up.
"""
from typing import Iterable

from .matcher import Match


def similarity_percent(matched_tokens: int, total_tokens: int) -> int:
    """
    Convert token coverage to an integer percentage in [0, 100].

    Args:
        matched_tokens: Tokens covered by matches
        total_tokens: All tokens of the submission

    Returns:
        round(100 * matched / total) with halves rounded up, 0 for empty submissions

    Examples:
        >>> similarity_percent(1, 8)  # 12.5 -> 13
        13
        >>> similarity_percent(0, 0)
        0
    """
    if total_tokens <= 0:
        return 0
    matched_tokens = max(0, min(matched_tokens, total_tokens))
    return (200 * matched_tokens + total_tokens) // (2 * total_tokens)


def matched_token_count(matches: Iterable[Match], submission_id: str) -> int:
    """Count tokens of one submission covered by any match."""
    covered = set()
    for match in matches:
        for region in (match.first, match.second):
            if region.submission_id == submission_id:
                covered.update(range(region.start_token, region.end_token))
    return len(covered)


def score_pair(
    matches: list[Match],
    first_id: str,
    first_total: int,
    second_id: str,
    second_total: int,
) -> tuple[int, int]:
    """
    Directional similarities of a compared pair.

    Returns:
        (similarity of first, similarity of second)
    """
    return (
        similarity_percent(matched_token_count(matches, first_id), first_total),
        similarity_percent(matched_token_count(matches, second_id), second_total),
    )
