"""
Error types raised across the DocChat core.

Any of these raised while ingesting a file is contained to that file by the
retrieval engine. Session failures propagate to the caller
after the single automatic recovery attempt.
"""


class DocChatError(Exception):
    """Base class for every DocChat error."""


class InvalidArgument(DocChatError, ValueError):
    """A parameter is outside its accepted range."""


class DimensionMismatch(DocChatError, ValueError):
    """An embedding does not match the dimensionality of the store."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected embedding of dimension {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class ExtractionFailed(DocChatError):
    """Text could not be extracted from a document."""


class EmbeddingFailed(DocChatError):
    """The embedding model is unavailable or failed on a text."""


class BackendInitError(DocChatError):
    """The inference backend could not be constructed."""


class BackendLost(DocChatError):
    """The backend's compute context was disposed while in use."""


class GenerationFailed(DocChatError):
    """Generation failed for a reason other than interruption."""


class Interrupted(DocChatError):
    """Generation was stopped on request."""

    def __init__(self, partial: str = ""):
        super().__init__("Generation interrupted")
        self.partial = partial


class SessionBusy(DocChatError):
    """A generation request is already in flight for this session."""
