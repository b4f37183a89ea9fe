"""
Exceptions raised by the duplicate check engine.

Only MalformedSource is recovered inside the engine (the file is skipped
and a warning is attached to the run); everything else reaches the caller.
"""


class DuplicateCheckError(Exception):
    """Base exception for duplicate check errors."""
    pass


class UnsupportedLanguage(DuplicateCheckError):
    """The declared language has no tokenizer."""

    def __init__(self, language):
        self.language = language
        super().__init__(f"Unsupported language: {language!r}")


class MalformedSource(DuplicateCheckError):
    """Unrecoverable lexical error in a single source file."""

    def __init__(self, path: str, line: int, column: int, reason: str):
        self.path = path
        self.line = line
        self.column = column
        self.reason = reason
        super().__init__(f"{path}:{line}:{column}: {reason}")


class SubmissionsNotFound(DuplicateCheckError):
    """The lab has no readable submissions."""
    pass


class NotFound(DuplicateCheckError):
    """A stored run or report entry does not exist."""
    pass


class StorageFailure(DuplicateCheckError):
    """The report store could not read or write a payload."""
    pass
