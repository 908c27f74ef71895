"""Error types reported by the analysis pipeline."""

from typing import Optional


class GuardianError(Exception):
    """Base class for CodeGuardian failures."""


class ValidationFailure(GuardianError):
    """Submitted code is rejected before any analysis runs."""


class TransportFailure(GuardianError):
    """The AI service could not be reached, refused the request or timed out."""

    def __init__(self, message: str, task: Optional[str] = None):
        super().__init__(message)
        self.task = task


class DecodeFailure(GuardianError):
    """The AI service answered but its text does not match the expected shape.

    The raw text is kept for logging only; it is not meant for end users.
    """

    def __init__(self, reason: str, raw_text: str = "", shape: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.raw_text = raw_text
        self.shape = shape

    def __str__(self) -> str:
        if self.shape:
            return f"{self.shape}: {self.reason}"
        return self.reason
