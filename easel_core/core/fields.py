from __future__ import annotations

import re
from typing import Any, Mapping

from PIL import ImageColor

from .errors import InvalidValueError, MissingFieldError, SceneError


_MISSING = object()

_FRACTIONAL_RGBA = re.compile(
    r"^rgba\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d*\.\d+)\s*\)$",
    re.IGNORECASE,
)


def coerce_int(
    fields: Mapping[str, Any],
    name: str,
    *,
    default: int | None = None,
    minimum: int | None = None,
    error: type[SceneError] = InvalidValueError,
) -> int:
    """Read an integer field the way form posts and JSON bodies deliver it.

    Absent, ``None`` and blank values fall back to ``default``. Floats are
    truncated toward zero and numeric strings are parsed.
    """
    raw = fields.get(name, _MISSING)
    if raw is _MISSING or raw is None or (isinstance(raw, str) and not raw.strip()):
        if default is None:
            raise error(f"{name} is required", field=name)
        return default
    value = _parse_int(raw, name, error)
    if minimum is not None and value < minimum:
        raise error(f"{name} must be >= {minimum}, got {value}", field=name)
    return value


def coerce_color(fields: Mapping[str, Any], name: str, *, default: str) -> str:
    raw = fields.get(name)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    if not isinstance(raw, str):
        raise InvalidValueError(f"{name} must be a color string", field=name)
    value = raw.strip()
    validate_color(value, name)
    return value


def coerce_text(fields: Mapping[str, Any], name: str, *, default: str | None = None) -> str:
    raw = fields.get(name)
    if raw is None or raw == "":
        if default is None:
            raise MissingFieldError(f"{name} is required", field=name)
        return default
    if not isinstance(raw, str):
        raise InvalidValueError(f"{name} must be a string", field=name)
    return raw


def normalize_color(value: str) -> str:
    """Rewrite CSS ``rgba(r, g, b, 0.5)`` to the integer alpha form Pillow parses.

    Alpha written with a decimal point is a 0..1 fraction; integer alpha stays 0..255.
    """
    value = value.strip()
    match = _FRACTIONAL_RGBA.match(value)
    if match is None:
        return value
    r, g, b, alpha = match.groups()
    fraction = float(alpha)
    if fraction > 1.0:
        return value
    return f"rgba({r}, {g}, {b}, {round(fraction * 255)})"


def validate_color(value: str, name: str) -> None:
    try:
        ImageColor.getrgb(normalize_color(value))
    except ValueError as exc:
        raise InvalidValueError(f"{name} is not a valid color: {value!r}", field=name) from exc


def _parse_int(raw: Any, name: str, error: type[SceneError]) -> int:
    if isinstance(raw, bool):
        raise error(f"{name} must be a number, got {raw!r}", field=name)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if raw != raw or raw in (float("inf"), float("-inf")):
            raise error(f"{name} must be finite", field=name)
        return int(raw)
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError as exc:
            raise error(f"{name} must be a number, got {raw!r}", field=name) from exc
        return _parse_int(parsed, name, error)
    raise error(f"{name} must be a number, got {type(raw).__name__}", field=name)
