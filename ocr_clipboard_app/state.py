"""Application state for the image-to-text workflow."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Optional

ImageReference = str


class Screen(enum.Enum):
    HOME = "home"
    RESULTS = "results"


class Phase(enum.Enum):
    """The three observable states of the processing machine."""

    IDLE = "idle"
    PROCESSING = "processing"
    RESULTS = "results"


class NoticeLength(enum.Enum):
    SHORT = "short"
    LONG = "long"


@dataclass(frozen=True)
class Notice:
    """Transient user-visible message (toast)."""

    message: str
    length: NoticeLength = NoticeLength.SHORT


@dataclass(frozen=True)
class ProcessingState:
    """Snapshot of the controller state.

    Instances are immutable; every transition publishes a new snapshot so a
    reader never sees a half-applied update.
    """

    screen: Screen = Screen.HOME
    image_ref: Optional[ImageReference] = None
    extracted_text: str = ""
    is_processing: bool = False

    def __post_init__(self) -> None:
        if self.is_processing and self.screen is not Screen.HOME:
            raise ValueError("processing is only shown on the home screen")

    @property
    def phase(self) -> Phase:
        if self.screen is Screen.RESULTS:
            return Phase.RESULTS
        if self.is_processing:
            return Phase.PROCESSING
        return Phase.IDLE

    @property
    def has_text(self) -> bool:
        return bool(self.extracted_text.strip())

    @classmethod
    def idle(cls) -> "ProcessingState":
        return cls()

    @classmethod
    def processing(cls, image_ref: ImageReference) -> "ProcessingState":
        return cls(screen=Screen.HOME, image_ref=image_ref, is_processing=True)

    def with_results(self, text: str) -> "ProcessingState":
        return replace(
            self, screen=Screen.RESULTS, extracted_text=text, is_processing=False
        )

    def to_dict(self) -> dict:
        return {
            "screen": self.screen.value,
            "phase": self.phase.value,
            "image": self.image_ref,
            "text": self.extracted_text,
            "is_processing": self.is_processing,
        }
