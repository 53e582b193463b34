from __future__ import annotations

import shutil
import threading
import time
from pathlib import Path

from PIL import Image


def write_png(path: Path, color: tuple[int, int, int] = (255, 255, 255), size: int = 16) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (size, size), color=color).save(path, format="PNG")
    return path


def make_sets(
    base: Path,
    blessed: dict[str, tuple[int, int, int]],
    current: dict[str, tuple[int, int, int]],
) -> Path:
    (base / "blessed").mkdir(parents=True, exist_ok=True)
    (base / "current").mkdir(parents=True, exist_ok=True)
    for name, color in blessed.items():
        write_png(base / "blessed" / f"{name}.png", color)
    for name, color in current.items():
        write_png(base / "current" / f"{name}.png", color)
    return base


class RedChannelPrimitive:
    """Score is the red-channel gap of the top-left pixel divided by ten."""

    name = "fake"

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def compare(self, candidate: Path, reference: Path, diff_output: Path) -> float:
        with self._lock:
            self.calls += 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            with Image.open(candidate) as img_a, Image.open(reference) as img_b:
                red_a = img_a.convert("RGB").getpixel((0, 0))[0]
                red_b = img_b.convert("RGB").getpixel((0, 0))[0]
            shutil.copyfile(candidate, diff_output)
            return abs(red_a - red_b) / 10.0
        finally:
            with self._lock:
                self.in_flight -= 1


def write_split_png(path: Path, black_left: bool = True, size: int = 32) -> Path:
    """Half black, half white; mirrored copies always differ in perceptual hash."""
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", (size, size), (255, 255, 255))
    half = size // 2
    columns = range(0, half) if black_left else range(half, size)
    for x in columns:
        for y in range(size):
            image.putpixel((x, y), (0, 0, 0))
    image.save(path, format="PNG")
    return path
