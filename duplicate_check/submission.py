"""
Submission model.

A submission is one student's files for one lab, tokenized file by file
and concatenated into a single token stream. File boundaries are kept so
that any index into the stream can be mapped back to a file position.
"""
import logging
from bisect import bisect_right
from dataclasses import dataclass, field
from functools import cached_property
from typing import Iterable

from .errors import MalformedSource
from .tokenizer import Language, Token, TokenizerOptions, tokenize_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceWarning:
    """A file skipped while building a submission."""
    submission_id: str
    path: str
    message: str


@dataclass(frozen=True)
class SubmissionFile:
    """One tokenized file of a submission."""
    path: str
    tokens: tuple[Token, ...]


@dataclass(frozen=True)
class Submission:
    """One student's tokenized work for a lab."""
    id: str
    language: Language
    files: tuple[SubmissionFile, ...] = ()
    warnings: tuple[SourceWarning, ...] = field(default=(), compare=False)

    @cached_property
    def tokens(self) -> tuple[Token, ...]:
        """All tokens of all files, in file order."""
        return tuple(token for submission_file in self.files for token in submission_file.tokens)

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @cached_property
    def file_offsets(self) -> tuple[int, ...]:
        """Index of the first token of each file in the concatenated stream."""
        offsets = []
        total = 0
        for submission_file in self.files:
            offsets.append(total)
            total += len(submission_file.tokens)
        return tuple(offsets)

    @cached_property
    def file_boundaries(self) -> frozenset[int]:
        """Indices of tokens that end a file; no match may extend past them."""
        ends = set()
        for offset, submission_file in zip(self.file_offsets, self.files):
            if submission_file.tokens:
                ends.add(offset + len(submission_file.tokens) - 1)
        return frozenset(ends)

    def locate(self, index: int) -> tuple[SubmissionFile, int]:
        """
        Map an index in the concatenated stream to (file, index within file).

        Raises:
            IndexError: index is outside the token stream
        """
        if index < 0 or index >= self.token_count:
            raise IndexError(f"Token index {index} out of range for submission {self.id}")
        # Empty files share their offset with the next file; bisect_right skips them
        position = bisect_right(self.file_offsets, index) - 1
        submission_file = self.files[position]
        return submission_file, index - self.file_offsets[position]

    def file_of(self, index: int) -> str:
        """Path of the file holding the token at index."""
        return self.locate(index)[0].path


def submission_sort_key(submission_id: str) -> tuple:
    """
    Ordering key for submission ids.

    Numeric ids (user ids) compare as numbers and sort before other ids,
    which compare as strings.

    Examples:
        >>> sorted(["10", "9", "bob"], key=submission_sort_key)
        ['9', '10', 'bob']
    """
    if submission_id.isdecimal():
        return 0, int(submission_id), submission_id
    return 1, 0, submission_id


def build_submission(
    submission_id: str,
    language: Language | str,
    files: Iterable[tuple[str, str]],
    options: TokenizerOptions | None = None,
) -> Submission:
    """
    Tokenize a student's files into a Submission.

    Files are processed in path order. A file with an unrecoverable lexical
    error is skipped and recorded as a warning; the rest of the submission
    is still built.

    Args:
        submission_id: Student or user id
        language: Declared language of every file
        files: (path, text) pairs
        options: Tokenizer normalization switches

    Returns:
        Submission, possibly with zero tokens

    Raises:
        UnsupportedLanguage: No tokenizer for the declared language
    """
    language = Language.parse(language)
    submission_files = []
    warnings = []

    for path, text in sorted(files, key=lambda item: item[0]):
        try:
            tokens = tokenize_source(text, language, path, options)
        except MalformedSource as e:
            logger.warning(f"Skipping {path} of submission {submission_id}: {e.reason} at line {e.line}")
            warnings.append(SourceWarning(submission_id=submission_id, path=path, message=str(e)))
            continue
        submission_files.append(SubmissionFile(path=path, tokens=tokens))

    submission = Submission(
        id=submission_id,
        language=language,
        files=tuple(submission_files),
        warnings=tuple(warnings),
    )
    logger.debug(f"Built submission {submission_id}: {len(submission.files)} file(s), {submission.token_count} token(s)")
    return submission
