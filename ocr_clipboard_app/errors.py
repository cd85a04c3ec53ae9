"""Exception taxonomy for the image-to-text workflow."""

from __future__ import annotations


class OcrAppError(Exception):
    """Base exception for the OCR clipboard app."""


class SelectionCancelled(OcrAppError):
    """Raised when the user dismisses an image picker without choosing."""


class PreparationError(OcrAppError):
    """The image reference could not be opened or decoded."""


class RecognitionError(OcrAppError):
    """The recognition engine reported a failure."""


class RecognitionTimeout(RecognitionError):
    """The recognition engine did not answer within the configured timeout."""

    def __init__(self, timeout_sec: float) -> None:
        super().__init__(f"recognition timed out after {timeout_sec:g}s")
        self.timeout_sec = timeout_sec


def describe(exc: BaseException) -> str:
    """Return a user-facing reason for ``exc``."""
    message = str(exc).strip()
    return message or "Unknown error"
