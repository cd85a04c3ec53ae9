"""Pick an image, recognize its text, and copy the result to the clipboard."""

from .controller import ProcessingController
from .errors import OcrAppError, PreparationError, RecognitionError, SelectionCancelled
from .state import Notice, Phase, ProcessingState, Screen

__version__ = "0.1.0"

__all__ = [
    "OcrAppError",
    "Notice",
    "Phase",
    "PreparationError",
    "ProcessingController",
    "ProcessingState",
    "RecognitionError",
    "Screen",
    "SelectionCancelled",
]
