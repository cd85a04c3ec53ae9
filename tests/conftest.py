import asyncio
from typing import Dict, List, Optional, Tuple, Union
from unittest.mock import MagicMock, patch

import pytest

from ocr_clipboard_app import logging_utils
from ocr_clipboard_app.state import Notice, ProcessingState

Outcome = Union[str, BaseException]


class FakeEngine:
    """
    Recognition engine stand-in.

    Outcomes are looked up by image reference. With ``hold=True`` every call
    parks on a future kept in ``pending`` so the test decides when (and in
    which order) completions arrive; ``pending`` holds the latest future per
    reference and ``futures`` every future ever handed out.
    """

    def __init__(self, outcomes: Optional[Dict[str, Outcome]] = None, hold: bool = False):
        self.outcomes: Dict[str, Outcome] = dict(outcomes or {})
        self.hold = hold
        self.pending: Dict[str, asyncio.Future] = {}
        self.futures: List[Tuple[str, asyncio.Future]] = []
        self.calls: List[str] = []
        self.last_result = None
        self.closed = False

    async def recognize(self, image_ref: str) -> str:
        self.calls.append(image_ref)
        if self.hold:
            fut = asyncio.get_running_loop().create_future()
            self.pending[image_ref] = fut
            self.futures.append((image_ref, fut))
            return await fut
        outcome = self.outcomes.get(image_ref, "")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def warmup(self) -> bool:
        return True

    def close(self) -> None:
        self.closed = True


class FakeSource:
    def __init__(self, ref: Optional[str]):
        self.ref = ref
        self.calls = 0

    async def pick_image(self) -> Optional[str]:
        self.calls += 1
        return self.ref


class FakeClipboard:
    def __init__(self):
        self.copied: List[str] = []

    def copy_text(self, text: str) -> None:
        self.copied.append(text)


class Recorder:
    """Collects state snapshots and notices emitted by a controller."""

    def __init__(self):
        self.states: List[ProcessingState] = []
        self.notices: List[Notice] = []

    def on_state(self, state: ProcessingState) -> None:
        self.states.append(state)

    def on_notice(self, notice: Notice) -> None:
        self.notices.append(notice)

    @property
    def messages(self) -> List[str]:
        return [n.message for n in self.notices]


async def settle(rounds: int = 3) -> None:
    """Let freshly scheduled tasks run up to their first suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def fake_clipboard():
    return FakeClipboard()


@pytest.fixture(autouse=True)
def _restore_logger_level():
    logger = logging_utils.get_logger()
    previous = logger.level
    yield
    logger.setLevel(previous)


@pytest.fixture
def mock_paddleocr():
    """
    PaddleOCR の重い初期化を避けるためのモック。
    predict の戻り値はテスト側で差し替えられる。
    """
    with patch("ocr_clipboard_app.ocr.PaddleOCR") as patched_cls:
        instance = MagicMock()
        instance.predict.return_value = [
            {"rec_texts": ["Hello", "World"], "rec_scores": [0.99, 0.95]},
        ]
        patched_cls.return_value = instance
        yield patched_cls
