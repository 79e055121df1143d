from __future__ import annotations

from functools import lru_cache

from PIL import ImageColor

from easel_core.core.fields import normalize_color


RGBA = tuple[int, int, int, int]

WHITE: RGBA = (255, 255, 255, 255)


@lru_cache(maxsize=256)
def parse_color(value: str) -> RGBA:
    """Resolve a CSS-style color (``#rgb``, ``#rrggbbaa``, ``rgb()``, ``rgba()``, names) to RGBA255."""
    rgb = ImageColor.getrgb(normalize_color(value))
    if len(rgb) == 3:
        return (rgb[0], rgb[1], rgb[2], 255)
    return (rgb[0], rgb[1], rgb[2], rgb[3])
