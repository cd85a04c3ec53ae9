"""Processing controller: the single owner of ``ProcessingState``.

The controller runs on one asyncio event loop. Recognition work is awaited
through the engine (which offloads blocking inference to an executor), and
every completion is checked against a generation counter before it may touch
state, so a superseded or reset cycle can never overwrite newer state.
"""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Protocol

from . import logging_utils
from .errors import (
    PreparationError,
    RecognitionError,
    RecognitionTimeout,
    SelectionCancelled,
    describe,
)
from .state import ImageReference, Notice, NoticeLength, ProcessingState

NO_IMAGE_SELECTED = "No image selected"
TEXT_COPIED = "Text copied to clipboard"
RECOGNITION_FAILED = "Text recognition failed: {reason}"
PREPARATION_FAILED = "Error preparing image: {reason}"

StateListener = Callable[[ProcessingState], None]
NoticeListener = Callable[[Notice], None]


class ImageSource(Protocol):
    async def pick_image(self) -> Optional[ImageReference]: ...


class TextRecognitionEngine(Protocol):
    async def recognize(self, image_ref: ImageReference) -> str: ...


class ClipboardSink(Protocol):
    def copy_text(self, text: str) -> None: ...


class ProcessingController:
    def __init__(
        self,
        engine: TextRecognitionEngine,
        clipboard: ClipboardSink,
        image_source: Optional[ImageSource] = None,
        *,
        timeout: Optional[float] = None,
        on_notice: Optional[NoticeListener] = None,
    ) -> None:
        self.engine = engine
        self.clipboard = clipboard
        self.image_source = image_source
        self.timeout = timeout
        self._state = ProcessingState.idle()
        self._generation = 0
        self._listeners: List[StateListener] = []
        self._notice_listeners: List[NoticeListener] = []
        if on_notice is not None:
            self._notice_listeners.append(on_notice)
        self._logger = logging_utils.get_logger()

    @property
    def state(self) -> ProcessingState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for state snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def add_notice_listener(self, listener: NoticeListener) -> None:
        self._notice_listeners.append(listener)

    def _set_state(self, new_state: ProcessingState) -> None:
        old = self._state
        self._state = new_state
        if old.phase is not new_state.phase:
            self._logger.info("State %s -> %s", old.phase.value, new_state.phase.value)
        for listener in list(self._listeners):
            listener(new_state)

    def _notify(self, message: str, length: NoticeLength = NoticeLength.SHORT) -> None:
        notice = Notice(message=message, length=length)
        for listener in list(self._notice_listeners):
            listener(notice)

    async def select_image(self) -> None:
        if self.image_source is None:
            raise RuntimeError("no image source configured")
        try:
            image_ref = await self.image_source.pick_image()
        except SelectionCancelled:
            image_ref = None
        if image_ref is None:
            self._logger.info("Image selection cancelled")
            self._notify(NO_IMAGE_SELECTED)
            return
        await self.process_image(image_ref)

    async def process_image(self, image_ref: ImageReference) -> None:
        """Run one recognition cycle for ``image_ref``.

        The latest call wins: an earlier in-flight cycle that completes after
        this one started is discarded.
        """
        self._generation += 1
        generation = self._generation
        self._set_state(ProcessingState.processing(image_ref))
        self._logger.info("Processing %s (generation %d)", image_ref, generation)

        try:
            text = await self._recognize(image_ref)
        except asyncio.CancelledError:
            if self._is_current(generation):
                self._logger.info("Processing of %s cancelled", image_ref)
                self._set_state(ProcessingState.idle())
            raise
        except PreparationError as exc:
            self._complete_failure(generation, PREPARATION_FAILED, exc)
        except Exception as exc:
            # RecognitionError and anything unexpected from the engine
            self._complete_failure(generation, RECOGNITION_FAILED, exc)
        else:
            self._complete_success(generation, text)

    async def _recognize(self, image_ref: ImageReference) -> str:
        """Await the engine, raising ``RecognitionTimeout`` only when our own deadline expires."""
        recognition = self.engine.recognize(image_ref)
        if self.timeout is None:
            return await recognition
        task = asyncio.ensure_future(recognition)
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            task.cancel()
            raise RecognitionTimeout(self.timeout)
        return task.result()

    def submit(self, image_ref: ImageReference) -> "asyncio.Task[None]":
        """Schedule ``process_image`` on the running loop and return the task."""
        return asyncio.get_running_loop().create_task(self.process_image(image_ref))

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            self._logger.debug(
                "Discarding stale completion (generation %d, current %d)",
                generation,
                self._generation,
            )
            return False
        return True

    def _complete_success(self, generation: int, text: str) -> None:
        if not self._is_current(generation):
            return
        self._set_state(self._state.with_results(text))

    def _complete_failure(self, generation: int, template: str, exc: BaseException) -> None:
        if not self._is_current(generation):
            return
        reason = describe(exc)
        kind = "preparation" if isinstance(exc, PreparationError) else "recognition"
        if not isinstance(exc, (PreparationError, RecognitionError)):
            self._logger.error("Unexpected engine error: %s", reason, exc_info=exc)
        self._logger.warning("Image %s failed: %s", kind, reason)
        self._set_state(ProcessingState.idle())
        self._notify(template.format(reason=reason), NoticeLength.LONG)

    def reset(self) -> None:
        """Clear results and return to the home screen; safe to repeat."""
        self._generation += 1
        if self._state != ProcessingState.idle():
            self._set_state(ProcessingState.idle())

    # Presentation aliases
    go_back = reset
    select_new_image = reset

    def copy_result(self) -> None:
        self.clipboard.copy_text(self._state.extracted_text)
        self._logger.info("Copied result to clipboard")
        self._notify(TEXT_COPIED)
