"""Clipboard helpers for the OCR app."""

from __future__ import annotations

import pyperclip


def copy_text(text: str) -> None:
    """Copy text to the system clipboard."""
    pyperclip.copy(text)


class PyperclipSink:
    """Clipboard sink backed by pyperclip."""

    def copy_text(self, text: str) -> None:
        copy_text(text)
