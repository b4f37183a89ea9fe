"""
Pairwise matching with Greedy String Tiling.

The matcher repeatedly takes the longest common run of tokens that does
not touch an already tiled token in either stream, marks it, and goes on
until no run of at least the minimum length is left.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Hashable, Sequence

from .submission import Submission, submission_sort_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tile:
    """A matched run: positions in both sequences and its length."""
    first_start: int
    second_start: int
    length: int


@dataclass(frozen=True)
class MatchRegion:
    """Half-open token range [start_token, end_token) of one submission."""
    submission_id: str
    file: str
    start_token: int
    end_token: int

    @property
    def length(self) -> int:
        return self.end_token - self.start_token

    def overlaps(self, other: "MatchRegion") -> bool:
        return (
            self.submission_id == other.submission_id
            and self.start_token < other.end_token
            and other.start_token < self.end_token
        )


@dataclass(frozen=True)
class Match:
    """One tile expressed as a region in each submission."""
    first: MatchRegion
    second: MatchRegion

    @property
    def length(self) -> int:
        return self.first.length

    def swapped(self) -> "Match":
        return Match(first=self.second, second=self.first)


def _longest_runs(
    first: Sequence[Hashable],
    second_positions: dict,
    first_marked: list[bool],
    second_marked: list[bool],
    first_breaks: frozenset[int],
    second_breaks: frozenset[int],
) -> tuple[int, list[tuple[int, int]]]:
    """
    Find the length of the longest unmarked common run and all its starts.

    Runs are computed backwards: the run starting at (i, j) extends the run
    at (i + 1, j + 1) unless either position ends a file.

    Returns:
        (best length, sorted list of (i, j) starts with that length)
    """
    best = 0
    starts: list[tuple[int, int]] = []
    next_row: dict[int, int] = {}

    for i in range(len(first) - 1, -1, -1):
        row: dict[int, int] = {}
        if not first_marked[i]:
            for j in second_positions.get(first[i], ()):
                if second_marked[j]:
                    continue
                if i in first_breaks or j in second_breaks:
                    length = 1
                else:
                    length = next_row.get(j + 1, 0) + 1
                row[j] = length
                if length > best:
                    best = length
                    starts = [(i, j)]
                elif length == best:
                    starts.append((i, j))
        next_row = row

    starts.sort()
    return best, starts


def greedy_string_tiling(
    first: Sequence[Hashable],
    second: Sequence[Hashable],
    minimum_match: int,
    first_breaks: frozenset[int] = frozenset(),
    second_breaks: frozenset[int] = frozenset(),
) -> list[Tile]:
    """
    Tile two sequences with maximal non-overlapping common runs.

    Among runs of the same length the one starting earliest in `first`
    wins, then the one starting earliest in `second`.

    Args:
        first: Equality keys of the first token stream
        second: Equality keys of the second token stream
        minimum_match: Shortest run that counts as a tile
        first_breaks: Indices in `first` a run may not continue past
        second_breaks: Indices in `second` a run may not continue past

    Returns:
        Tiles in the order they were found (longest first)

    Examples:
        >>> greedy_string_tiling("abcxabc", "abc", 2)
        [Tile(first_start=0, second_start=0, length=3)]
    """
    if minimum_match < 1:
        raise ValueError(f"minimum_match must be at least 1, got {minimum_match}")

    second_positions: dict = defaultdict(list)
    for j, key in enumerate(second):
        second_positions[key].append(j)

    first_marked = [False] * len(first)
    second_marked = [False] * len(second)
    tiles: list[Tile] = []

    while True:
        best, starts = _longest_runs(
            first, second_positions, first_marked, second_marked, first_breaks, second_breaks
        )
        if best < minimum_match:
            break

        # Every run of length `best` found in this pass is still maximal after
        # marking the others, unless it overlaps one of them
        for i, j in starts:
            if any(first_marked[i:i + best]) or any(second_marked[j:j + best]):
                continue
            for offset in range(best):
                first_marked[i + offset] = True
                second_marked[j + offset] = True
            tiles.append(Tile(first_start=i, second_start=j, length=best))

    return tiles


def match_submissions(
    first: Submission,
    second: Submission,
    minimum_token_match: int,
) -> list[Match]:
    """
    Find all matches between two submissions.

    The tiling always runs with the submissions in canonical id order, so
    comparing (B, A) gives the same tiles as (A, B) with regions swapped.

    Raises:
        ValueError: Same submission on both sides or minimum_token_match < 1
    """
    if first.id == second.id:
        raise ValueError(f"Submission {first.id} cannot be compared with itself")

    if submission_sort_key(second.id) < submission_sort_key(first.id):
        return [match.swapped() for match in match_submissions(second, first, minimum_token_match)]

    tiles = greedy_string_tiling(
        [token.key for token in first.tokens],
        [token.key for token in second.tokens],
        minimum_token_match,
        first_breaks=first.file_boundaries,
        second_breaks=second.file_boundaries,
    )

    matches = [
        Match(
            first=MatchRegion(
                submission_id=first.id,
                file=first.file_of(tile.first_start),
                start_token=tile.first_start,
                end_token=tile.first_start + tile.length,
            ),
            second=MatchRegion(
                submission_id=second.id,
                file=second.file_of(tile.second_start),
                start_token=tile.second_start,
                end_token=tile.second_start + tile.length,
            ),
        )
        for tile in tiles
    ]
    logger.debug(f"Matched {first.id} and {second.id}: {len(matches)} tile(s)")
    return matches
