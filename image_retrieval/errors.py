"""
Error types raised by the retrieval core.

Bad input is reported as ValueError subclasses so callers that already
catch ValueError keep working. Aborted matrix builds are RuntimeErrors.
"""


class InvalidInputError(ValueError):
    """The collection or a feedback request is absent, empty, or malformed."""


class InvalidImageError(InvalidInputError):
    """An image in the collection cannot be used (e.g. it has no pixels)."""

    def __init__(self, index: int, message: str):
        super().__init__(f"image {index}: {message}")
        self.index = index


class DegenerateFeedbackError(ValueError):
    """Every feature weight of a feedback round came out as zero."""


class DeadlineExceededError(RuntimeError):
    """A distance matrix build ran past its deadline and was abandoned."""
