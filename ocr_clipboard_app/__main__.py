"""CLI entry point: pick an image, recognize it, print the result as JSON."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import capture, clipboard, logging_utils
from .config import load_config
from .controller import ProcessingController
from .ocr import PaddleRecognitionEngine
from .state import Notice, NoticeLength, Phase


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ocr-clipboard",
        description="Extract text from an image with PaddleOCR.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--image", type=Path, help="Path to an existing image file to OCR."
    )
    source.add_argument(
        "--capture",
        action="store_true",
        help="Select a screen region instead of opening a file dialog.",
    )
    parser.add_argument(
        "--display", type=int, default=1, help="Display index for --capture."
    )
    parser.add_argument(
        "--no-clipboard",
        action="store_true",
        help="Do not copy the recognized text to the clipboard.",
    )
    parser.add_argument("--lang", help="Override OCR_LANG for this run.")
    parser.add_argument(
        "--timeout", type=float, help="Override OCR_TIMEOUT_SEC for this run."
    )
    parser.add_argument(
        "--warmup",
        action="store_true",
        help="Load the OCR models before showing the picker.",
    )
    parser.add_argument("--log-level", help="Override OCR_LOG_LEVEL for this run.")
    return parser


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False), flush=True)


def _build_source(args: argparse.Namespace):
    if args.image:
        return capture.PathImageSource(str(args.image.expanduser().resolve()))
    if args.capture:
        return capture.ScreenCaptureSource(display=args.display)
    return capture.DialogImageSource()


async def run(args: argparse.Namespace) -> Dict[str, Any]:
    config = load_config()
    logger = logging_utils.get_logger(config.log_level)

    notices: List[Notice] = []

    def _on_notice(notice: Notice) -> None:
        notices.append(notice)
        if notice.length is NoticeLength.LONG:
            logger.warning("%s", notice.message)
        else:
            logger.info("%s", notice.message)

    engine = PaddleRecognitionEngine(config)
    if args.warmup:
        engine.warmup()

    controller = ProcessingController(
        engine,
        clipboard.PyperclipSink(),
        _build_source(args),
        timeout=config.timeout,
        on_notice=_on_notice,
    )
    try:
        await controller.select_image()
    finally:
        engine.close()

    state = controller.state
    if state.phase is Phase.RESULTS:
        if not state.has_text:
            logger.info("No text detected")
        elif not args.no_clipboard:
            controller.copy_result()

    payload: Dict[str, Any] = {"success": state.phase is Phase.RESULTS}
    payload.update(state.to_dict())
    payload["notices"] = [n.message for n in notices]
    if engine.last_result is not None and state.phase is Phase.RESULTS:
        payload["scores"] = engine.last_result.scores
        payload["mean_confidence"] = engine.last_result.mean_confidence
    return payload


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.lang:
        os.environ["OCR_LANG"] = args.lang
    if args.timeout is not None:
        os.environ["OCR_TIMEOUT_SEC"] = str(args.timeout)
    if args.log_level:
        os.environ["OCR_LOG_LEVEL"] = args.log_level

    logger = logging_utils.get_logger()
    logger.info("Starting OCR workflow")
    try:
        payload = asyncio.run(run(args))
    except Exception as exc:
        logger.exception("OCR workflow failed: %s", exc)
        _print_json({"success": False, "error": str(exc)})
        return 1
    _print_json(payload)
    return 0 if payload["success"] else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
