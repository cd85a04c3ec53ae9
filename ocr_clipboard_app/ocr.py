"""Text recognition engine backed by PaddleOCR.

Performance notes:
- One engine instance per ``PaddleRecognitionEngine``, built lazily and kept warm
- ``predict`` runs on a single engine-owned thread so the loop stays responsive
- Tuning comes from ``AppConfig`` (environment driven)
"""

from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import cv2
import numpy as np
from paddleocr import PaddleOCR
from PIL import Image, UnidentifiedImageError

from . import logging_utils
from .config import AppConfig, load_config
from .errors import PreparationError, RecognitionError, describe

CANON: dict[str, str] = {
    "，": ",",
    "．": ".",
    "：": ":",
    "；": ";",
    "！": "!",
    "？": "?",
}


def post_clean(text: str) -> str:
    s = text
    for k, v in CANON.items():
        s = s.replace(k, v)
    return s


@dataclass
class OcrResult:
    """Structured OCR response including fragment-level scores."""

    texts: List[str]
    scores: List[Optional[float]]
    separator: str = "\n"
    canonicalize: bool = True

    @property
    def raw_text(self) -> str:
        return self.separator.join(self.texts)

    @property
    def combined_text(self) -> str:
        raw = self.raw_text
        return post_clean(raw) if self.canonicalize else raw

    @property
    def mean_confidence(self) -> Optional[float]:
        vals = [v for v in self.scores if isinstance(v, (int, float))]
        if not vals:
            return None
        return float(sum(vals) / len(vals))

    @property
    def min_confidence(self) -> Optional[float]:
        vals = [v for v in self.scores if isinstance(v, (int, float))]
        if not vals:
            return None
        return float(min(vals))


def load_image(path: str) -> np.ndarray:
    """Open ``path`` and return a BGR array ready for PaddleOCR."""
    try:
        with Image.open(path) as img:
            rgb = np.array(img.convert("RGB"))
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError, ValueError) as exc:
        raise PreparationError(describe(exc)) from exc
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


def build_ocr_kwargs(config: AppConfig) -> dict:
    det_model_name, rec_model_name = config.model_names
    return {
        "lang": config.lang,
        "use_doc_orientation_classify": False,
        "use_doc_unwarping": False,
        "use_textline_orientation": False,
        "cpu_threads": config.cpu_threads,
        "text_det_limit_side_len": config.det_limit_side_len,
        "text_detection_model_name": det_model_name,
        "text_recognition_model_name": rec_model_name,
    }


def normalize_result(raw: Any) -> tuple[List[str], List[Optional[float]]]:
    """Flatten either PaddleOCR result shape into texts and scores."""
    texts: List[str] = []
    scores: List[Optional[float]] = []

    if isinstance(raw, dict):
        raw = [raw]
    if isinstance(raw, Sequence) and raw:
        first = raw[0]
        if hasattr(first, "get"):
            texts = [str(t) for t in (first.get("rec_texts") or [])]
            scores = [_safe_float(v) for v in (first.get("rec_scores") or [])]
            if len(scores) < len(texts):
                scores.extend([None] * (len(texts) - len(scores)))
            del scores[len(texts):]
        elif isinstance(first, Sequence):
            for item in first:
                try:
                    text, score = item[1]
                except (IndexError, TypeError, ValueError):
                    continue
                texts.append(str(text))
                scores.append(_safe_float(score))

    return texts, scores


def _safe_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class PaddleRecognitionEngine:
    """Recognition engine contract implemented on top of PaddleOCR."""

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self.config = config or load_config()
        self._engine: Optional[PaddleOCR] = None
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self.last_perf: Optional[dict] = None
        self.last_result: Optional[OcrResult] = None

    def _get_engine(self) -> PaddleOCR:
        with self._lock:
            if self._engine is None:
                kwargs = build_ocr_kwargs(self.config)
                logger = logging_utils.get_logger()
                logger.info(
                    "[BOOT] OCR_PROFILE=%s det=%s rec=%s",
                    self.config.profile,
                    kwargs["text_detection_model_name"],
                    kwargs["text_recognition_model_name"],
                )
                try:
                    self._engine = PaddleOCR(**kwargs)
                except (TypeError, ValueError) as exc:
                    logger.warning(
                        "PaddleOCR rejected tuned options (%s); using defaults", exc
                    )
                    self._engine = PaddleOCR(lang=self.config.lang)
            return self._engine

    def warmup(self) -> bool:
        """Run a tiny dummy inference to load models; report success."""
        try:
            tiny = np.full((32, 32, 3), 255, dtype=np.uint8)
            self._get_engine().predict(tiny)
        except Exception as exc:  # pragma: no cover - best-effort warmup
            logging_utils.get_logger().warning("Warmup failed: %s", exc)
            return False
        return True

    def recognize_sync(self, image_ref: str) -> OcrResult:
        """Blocking recognition of the image at ``image_ref``."""
        logger = logging_utils.get_logger()
        t0 = time.perf_counter()
        image = load_image(image_ref)
        t1 = time.perf_counter()

        try:
            raw_result = self._get_engine().predict(image)
        except Exception as exc:
            raise RecognitionError(describe(exc)) from exc
        t2 = time.perf_counter()

        texts, scores = normalize_result(raw_result)
        result = OcrResult(
            texts=texts,
            scores=scores,
            separator=self.config.line_separator,
            canonicalize=self.config.enable_canon,
        )
        t3 = time.perf_counter()

        self.last_perf = {
            "preproc_ms": (t1 - t0) * 1000.0,
            "infer_ms": (t2 - t1) * 1000.0,
            "postproc_ms": (t3 - t2) * 1000.0,
            "total_ms": (t3 - t0) * 1000.0,
        }
        self.last_result = result
        logger.info(
            "[PERF] preproc=%.1fms infer=%.1fms postproc=%.1fms total=%.1fms",
            self.last_perf["preproc_ms"],
            self.last_perf["infer_ms"],
            self.last_perf["postproc_ms"],
            self.last_perf["total_ms"],
        )
        logger.info(
            "[OCR] n_fragments=%d mean_conf=%s min_conf=%s",
            len(result.texts),
            f"{result.mean_confidence:.2f}" if result.mean_confidence is not None else "-",
            f"{result.min_confidence:.2f}" if result.min_confidence is not None else "-",
        )
        return result

    async def recognize(self, image_ref: str) -> str:
        loop = asyncio.get_running_loop()
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="paddleocr"
            )
        result = await loop.run_in_executor(self._executor, self.recognize_sync, image_ref)
        return result.combined_text

    def close(self) -> None:
        """Release the inference thread without waiting for a running predict."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
