from __future__ import annotations

import os
from dataclasses import dataclass


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return v.strip()


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip().lower()
    return v in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(float(v))
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    # engine
    lang: str = "en"
    profile: str = "mobile"
    cpu_threads: int = 4
    det_limit_side_len: int = 960
    # text output
    enable_canon: bool = True
    line_separator: str = "\n"
    # workflow
    timeout_sec: float = 30.0
    log_level: str = "INFO"

    @property
    def timeout(self) -> float | None:
        """Recognition timeout in seconds, ``None`` when disabled."""
        if self.timeout_sec <= 0:
            return None
        return self.timeout_sec

    @property
    def model_names(self) -> tuple[str, str]:
        if self.profile == "server":
            return "PP-OCRv5_server_det", "PP-OCRv5_server_rec"
        return "PP-OCRv5_mobile_det", "PP-OCRv5_mobile_rec"


def load_config() -> AppConfig:
    defaults = AppConfig()
    separator = os.getenv("OCR_LINE_SEPARATOR")
    if separator is None:
        separator = defaults.line_separator
    else:
        separator = separator.replace("\\n", "\n").replace("\\t", "\t")
    return AppConfig(
        lang=_env_str("OCR_LANG", defaults.lang),
        profile=_env_str("OCR_PROFILE", defaults.profile).lower(),
        cpu_threads=_env_int("OCR_CPU_THREADS", defaults.cpu_threads),
        det_limit_side_len=_env_int(
            "OCR_DET_LIMIT_SIDE_LEN", defaults.det_limit_side_len
        ),
        enable_canon=_env_bool("OCR_ENABLE_CANON", defaults.enable_canon),
        line_separator=separator,
        timeout_sec=_env_float("OCR_TIMEOUT_SEC", defaults.timeout_sec),
        log_level=_env_str("OCR_LOG_LEVEL", defaults.log_level).upper(),
    )


__all__ = ["AppConfig", "load_config"]
