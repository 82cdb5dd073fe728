"""Error taxonomy for the QuickHost client core."""


class QuickHostError(Exception):
    """Base class for every error raised by the client core."""


class NotFound(QuickHostError):
    """The requested row or site does not exist (or is not visible)."""


class ValidationError(QuickHostError):
    """Input rejected locally, before any backend call."""


class BackendError(QuickHostError):
    """Transport failure or a non-2xx response from the platform."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
