from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont


FontLike = ImageFont.FreeTypeFont | ImageFont.ImageFont

SANS_FONT_FALLBACK_PATTERNS = (
    "arial",
    "helvetica",
    "liberationsans",
    "dejavusans",
    "freesans",
    "notosans",
)
FONT_DIRS = (
    Path.home() / "Library" / "Fonts",
    Path("/Library/Fonts"),
    Path("/System/Library/Fonts"),
    Path("/System/Library/Fonts/Supplemental"),
    Path("/usr/share/fonts"),
    Path("/usr/local/share/fonts"),
    Path("C:/Windows/Fonts"),
)


@dataclass(frozen=True)
class TextMask:
    """Coverage mask for a text run, positioned relative to the pen on the baseline."""

    alpha: np.ndarray
    x_offset: int
    y_offset: int


def render_text_mask(text: str, font_family: str, font_size_px: int) -> TextMask:
    if not text:
        return TextMask(alpha=np.zeros((0, 0), dtype=np.uint8), x_offset=0, y_offset=0)
    return _render_text_mask(text, font_family.strip().lower(), max(1, int(font_size_px)))


@lru_cache(maxsize=256)
def _render_text_mask(text: str, font_family: str, size: int) -> TextMask:
    font = load_font(font_family, size)
    ascent, _ = font_metrics(font, size)
    left, top, right, bottom = font.getbbox(text)
    width = max(1, int(right - left))
    height = max(1, int(bottom - top))
    image = Image.new("L", (width, height), 0)
    draw = ImageDraw.Draw(image)
    draw.text((-left, -top), text, fill=255, font=font)
    alpha = np.asarray(image, dtype=np.uint8)
    alpha.setflags(write=False)
    return TextMask(alpha=alpha, x_offset=int(left), y_offset=int(top) - ascent)


@lru_cache(maxsize=64)
def load_font(font_family: str, size: int) -> FontLike:
    font_path = _resolve_font_path(font_family)
    if font_path is not None:
        try:
            return ImageFont.truetype(str(font_path), size=size)
        except OSError:
            pass
    return ImageFont.load_default(size=size)


def font_metrics(font: FontLike, size: int) -> tuple[int, int]:
    try:
        ascent, descent = font.getmetrics()
        return int(max(1, ascent)), int(max(0, descent))
    except AttributeError:
        return int(max(1, size * 0.8)), int(max(0, size * 0.2))


@lru_cache(maxsize=64)
def _resolve_font_path(font_family: str) -> Path | None:
    wanted = font_family.replace(" ", "")
    patterns = ((wanted,) if wanted else ()) + SANS_FONT_FALLBACK_PATTERNS
    candidates = _font_candidates()
    for pattern in patterns:
        for path in candidates:
            if path.stem.lower().replace(" ", "") == pattern:
                return path
        for path in candidates:
            if pattern in path.stem.lower().replace(" ", ""):
                return path
    return None


@lru_cache(maxsize=1)
def _font_candidates() -> tuple[Path, ...]:
    candidates: list[Path] = []
    for base in FONT_DIRS:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(sorted(base.rglob(ext)))
    return tuple(candidates)
