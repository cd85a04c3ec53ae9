"""Image sources: fixed paths, a file dialog, and interactive screen capture."""

from __future__ import annotations

import tempfile
import time
import tkinter as tk
from pathlib import Path
from tkinter import filedialog
from typing import Optional, Tuple

import mss
from mss.exception import ScreenShotError
from PIL import Image

from . import logging_utils

_LOGGER = logging_utils.get_logger()

BBox = Tuple[int, int, int, int]

IMAGE_FILETYPES = [
    ("Images", "*.png *.jpg *.jpeg *.bmp *.gif *.webp *.tif *.tiff"),
    ("All files", "*.*"),
]


class PathImageSource:
    """Returns a path chosen up front (``None`` behaves like a cancelled picker)."""

    def __init__(self, path: Optional[str]) -> None:
        self.path = path

    async def pick_image(self) -> Optional[str]:
        return self.path


def ask_image_path(initial_dir: Optional[str] = None) -> Optional[str]:
    """Show a native open-file dialog and return the chosen path."""
    root = tk.Tk()
    root.withdraw()
    root.attributes("-topmost", True)
    try:
        chosen = filedialog.askopenfilename(
            parent=root,
            title="Select image",
            initialdir=initial_dir,
            filetypes=IMAGE_FILETYPES,
        )
    finally:
        root.destroy()
    # askopenfilename returns "" (or an empty tuple on some platforms) on cancel
    return str(chosen) if chosen else None


class DialogImageSource:
    """Image picker backed by the tkinter file dialog."""

    def __init__(self, initial_dir: Optional[str] = None) -> None:
        self.initial_dir = initial_dir

    async def pick_image(self) -> Optional[str]:
        # Tk dialogs must run on the main thread.
        return ask_image_path(self.initial_dir)


def select_capture_area(display: int = 1) -> Optional[BBox]:
    """Interactively select a rectangle on ``display``; ``None`` if aborted."""
    with mss.mss() as sct:
        try:
            monitor = sct.monitors[display]
        except IndexError as exc:
            raise ValueError(f"Display {display} is not available") from exc

    root = tk.Tk()
    root.attributes("-fullscreen", True)
    root.attributes("-alpha", 0.3)
    root.attributes("-topmost", True)
    root.configure(bg="black")

    canvas = tk.Canvas(root, cursor="cross", bg="black", highlightthickness=0)
    canvas.pack(fill=tk.BOTH, expand=True)

    coords: list[int] = []
    rect_id: Optional[int] = None

    def _on_press(event: tk.Event) -> None:
        nonlocal rect_id
        coords[:] = [event.x, event.y, event.x, event.y]
        if rect_id is not None:
            canvas.delete(rect_id)
        rect_id = canvas.create_rectangle(*coords, outline="red", width=2)

    def _on_drag(event: tk.Event) -> None:
        if not coords:
            return
        coords[2] = event.x
        coords[3] = event.y
        if rect_id is not None:
            canvas.coords(rect_id, *coords)

    def _on_release(_: tk.Event) -> None:
        root.quit()

    def _on_escape(_: tk.Event) -> None:
        coords.clear()
        root.quit()

    canvas.bind("<ButtonPress-1>", _on_press)
    canvas.bind("<B1-Motion>", _on_drag)
    canvas.bind("<ButtonRelease-1>", _on_release)
    root.bind("<Escape>", _on_escape)

    root.mainloop()
    root.destroy()

    if len(coords) != 4:
        return None

    x1, y1, x2, y2 = coords
    if x1 == x2 or y1 == y2:
        return None
    return (
        min(x1, x2) + monitor["left"],
        min(y1, y2) + monitor["top"],
        max(x1, x2) + monitor["left"],
        max(y1, y2) + monitor["top"],
    )


def grab_image(bbox: BBox) -> Image.Image:
    """Capture the specified bounding box as a PIL image.

    mss is created per call and used within a context manager; one retry is
    attempted before giving up.
    """
    x1, y1, x2, y2 = map(int, bbox)
    region = {
        "left": x1,
        "top": y1,
        "width": max(0, x2 - x1),
        "height": max(0, y2 - y1),
    }
    if region["width"] == 0 or region["height"] == 0:
        raise ValueError(f"empty region: {region}")

    try:
        with mss.mss() as sct:
            raw = sct.grab(region)
            return Image.frombytes("RGB", raw.size, raw.rgb)
    except ScreenShotError as exc:
        _LOGGER.warning("mss grab failed (1st): %s", exc)
        time.sleep(0.05)
    with mss.mss() as sct:
        raw = sct.grab(region)
        return Image.frombytes("RGB", raw.size, raw.rgb)


class ScreenCaptureSource:
    """Lets the user drag a region on a monitor and saves it as a PNG."""

    def __init__(self, display: int = 1, output_dir: Optional[str] = None) -> None:
        self.display = display
        self.output_dir = Path(output_dir) if output_dir else Path(tempfile.gettempdir())

    def capture(self) -> Optional[str]:
        bbox = select_capture_area(display=self.display)
        if bbox is None:
            return None
        _LOGGER.info("Captured bbox: %s", bbox)
        image = grab_image(bbox)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"ocr_capture_{int(time.time() * 1000)}.png"
        image.save(path)
        return str(path)

    async def pick_image(self) -> Optional[str]:
        return self.capture()
