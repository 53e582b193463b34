from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

import imagehash
import numpy as np
from PIL import Image, ImageColor

from visreg.errors import ConfigurationError

PRIMITIVE_NAMES = ("auto", "imagemagick", "phash")

_METRIC_LINE_RE = re.compile(
    r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?|[-+]?inf)(?:\s*\(.*\))?\s*$",
    re.IGNORECASE,
)


class DiffError(RuntimeError):
    pass


class DiffTimeoutError(DiffError):
    pass


class DiffPrimitive(Protocol):
    name: str

    def compare(self, candidate: Path, reference: Path, diff_output: Path) -> float:
        """Return a non-negative score and write a composite to ``diff_output``."""
        ...


def _flatten_image(image: Image.Image, color: tuple[int, int, int] = (255, 255, 255)) -> Image.Image:
    if image.mode in {"RGBA", "LA"} or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        base = Image.new("RGBA", rgba.size, (*color, 255))
        base.alpha_composite(rgba)
        return base.convert("RGB")
    return image.convert("RGB")


def _load_rgb(path: Path) -> Image.Image:
    try:
        with Image.open(path) as raw:
            raw.load()
            return _flatten_image(raw)
    except (OSError, ValueError) as exc:
        raise DiffError(f"Failed to decode {path.name}: {exc}") from exc


def _pad_to(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    if image.size == size:
        return image
    canvas = Image.new("RGB", size, (255, 255, 255))
    canvas.paste(image, (0, 0))
    return canvas


def write_highlight_composite(
    candidate: Image.Image,
    reference: Image.Image,
    output_png: Path,
    highlight_color: str,
) -> int:
    """Tint pixels that differ between the two images over the candidate.

    Returns the number of highlighted pixels.
    """
    size = (max(candidate.width, reference.width), max(candidate.height, reference.height))
    arr_a = np.asarray(_pad_to(candidate, size), dtype=np.float32)
    arr_b = np.asarray(_pad_to(reference, size), dtype=np.float32)
    mask = np.any(np.abs(arr_a - arr_b) > 0, axis=2)

    red, green, blue, alpha = ImageColor.getcolor(highlight_color, "RGBA")
    weight = alpha / 255.0
    tint = np.array([red, green, blue], dtype=np.float32)
    out = arr_a.copy()
    out[mask] = out[mask] * (1.0 - weight) + tint * weight
    output_png.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.clip(out, 0, 255).astype(np.uint8)).save(output_png)
    return int(mask.sum())


class ImageHashPhash:
    """In-process perceptual hash distance using ``imagehash``."""

    name = "phash"

    def __init__(self, highlight_color: str = "#ff000050", hash_size: int = 8) -> None:
        self.highlight_color = highlight_color
        self.hash_size = hash_size

    def compare(self, candidate: Path, reference: Path, diff_output: Path) -> float:
        img_a = _load_rgb(candidate)
        img_b = _load_rgb(reference)
        distance = imagehash.phash(img_a, hash_size=self.hash_size) - imagehash.phash(
            img_b, hash_size=self.hash_size
        )
        try:
            write_highlight_composite(img_a, img_b, diff_output, self.highlight_color)
        except (OSError, ValueError) as exc:
            raise DiffError(f"Failed to write diff image: {exc}") from exc
        return float(distance)


def parse_metric(output: str) -> float:
    """Read the metric from the last non-empty line; warnings may precede it."""
    lines = [line for line in output.splitlines() if line.strip()]
    match = _METRIC_LINE_RE.match(lines[-1]) if lines else None
    if match is None:
        raise DiffError(f"No metric in compare output: {output.strip()!r}")
    value = float(match.group(1))
    if value != value or value < 0:
        raise DiffError(f"Invalid metric in compare output: {output.strip()!r}")
    return value


class ImageMagickPhash:
    """Runs ImageMagick ``compare -metric PHASH`` as an external process."""

    name = "imagemagick"

    def __init__(
        self,
        binary: str = "compare",
        highlight_color: str = "#ff000050",
        timeout_sec: float | None = None,
    ) -> None:
        self.binary = binary
        self.highlight_color = highlight_color
        self.timeout_sec = timeout_sec

    def command(self, candidate: Path, reference: Path, diff_output: Path) -> list[str]:
        return [
            self.binary,
            "-metric",
            "PHASH",
            "-highlight-color",
            self.highlight_color,
            str(candidate),
            str(reference),
            str(diff_output),
        ]

    def compare(self, candidate: Path, reference: Path, diff_output: Path) -> float:
        cmd = self.command(candidate, reference, diff_output)
        try:
            result = subprocess.run(  # noqa: S603
                cmd,
                check=False,
                capture_output=True,
                text=True,
                timeout=self.timeout_sec,
            )
        except subprocess.TimeoutExpired as exc:
            raise DiffTimeoutError(f"compare timed out after {self.timeout_sec}s.") from exc
        except OSError as exc:
            raise DiffError(f"Failed to run {self.binary}: {exc}") from exc
        # 0: similar, 1: dissimilar, anything else is an error.
        if result.returncode not in (0, 1):
            message = (result.stderr or result.stdout).strip() or f"exit status {result.returncode}"
            raise DiffError(f"compare failed: {message}")
        # The metric is printed on stderr.
        return parse_metric(result.stderr or result.stdout)


def has_imagemagick(binary: str = "compare") -> bool:
    return shutil.which(binary) is not None


def resolve_primitive(
    name: str = "auto",
    timeout_sec: float | None = None,
    highlight_color: str = "#ff000050",
) -> DiffPrimitive:
    if name == "auto":
        name = "imagemagick" if has_imagemagick() else "phash"
    if name == "imagemagick":
        return ImageMagickPhash(highlight_color=highlight_color, timeout_sec=timeout_sec)
    if name == "phash":
        return ImageHashPhash(highlight_color=highlight_color)
    raise ConfigurationError(
        "E1011_PRIMITIVE_UNKNOWN",
        f"Unknown diff primitive: {name!r}.",
        f"Use one of: {', '.join(PRIMITIVE_NAMES)}.",
    )
