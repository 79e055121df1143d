from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, replace
from typing import Any, Callable, ClassVar, Mapping, TypeAlias
from urllib.parse import urlparse

from .errors import InvalidValueError, MissingFieldError
from .fields import coerce_color, coerce_int, coerce_text, validate_color


DEFAULT_COLOR = "#000000"
DEFAULT_BOX_SIZE = 100
DEFAULT_RADIUS = 50
DEFAULT_STROKE_WIDTH = 1
DEFAULT_FONT_SIZE = 16
DEFAULT_FONT_FAMILY = "Arial"
IMAGE_URL_SCHEMES = {"http", "https", "data"}


def _require_positive(value: int, name: str) -> None:
    if value <= 0:
        raise InvalidValueError(f"{name} must be > 0, got {value}", field=name)


def _require_non_negative(value: int, name: str) -> None:
    if value < 0:
        raise InvalidValueError(f"{name} must be >= 0, got {value}", field=name)


@dataclass(frozen=True)
class RectangleElement:
    x: int
    y: int
    width: int
    height: int
    fill_color: str = DEFAULT_COLOR
    stroke_color: str = DEFAULT_COLOR
    stroke_width: int = DEFAULT_STROKE_WIDTH
    element_id: int | None = None

    kind: ClassVar[str] = "rectangle"

    def __post_init__(self) -> None:
        _require_positive(self.width, "width")
        _require_positive(self.height, "height")
        _require_non_negative(self.stroke_width, "strokeWidth")
        validate_color(self.fill_color, "fillColor")
        validate_color(self.stroke_color, "strokeColor")

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "id": _wire_id(self.element_id),
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "fillColor": self.fill_color,
            "strokeColor": self.stroke_color,
            "strokeWidth": self.stroke_width,
        }


@dataclass(frozen=True)
class CircleElement:
    """Circle whose ``(x, y)`` is the top-left of its bounding box."""

    x: int
    y: int
    radius: int
    fill_color: str = DEFAULT_COLOR
    stroke_color: str = DEFAULT_COLOR
    stroke_width: int = DEFAULT_STROKE_WIDTH
    element_id: int | None = None

    kind: ClassVar[str] = "circle"

    def __post_init__(self) -> None:
        _require_positive(self.radius, "radius")
        _require_non_negative(self.stroke_width, "strokeWidth")
        validate_color(self.fill_color, "fillColor")
        validate_color(self.stroke_color, "strokeColor")

    @property
    def center(self) -> tuple[int, int]:
        return (self.x + self.radius, self.y + self.radius)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "id": _wire_id(self.element_id),
            "x": self.x,
            "y": self.y,
            "radius": self.radius,
            "fillColor": self.fill_color,
            "strokeColor": self.stroke_color,
            "strokeWidth": self.stroke_width,
        }


@dataclass(frozen=True)
class TextElement:
    """Single-line text run; glyph tops sit at ``y``, the baseline at ``y + font_size``."""

    x: int
    y: int
    text: str
    font_size: int = DEFAULT_FONT_SIZE
    font_family: str = DEFAULT_FONT_FAMILY
    color: str = DEFAULT_COLOR
    element_id: int | None = None

    kind: ClassVar[str] = "text"

    def __post_init__(self) -> None:
        if not self.text:
            raise MissingFieldError("text content is required", field="text")
        _require_positive(self.font_size, "fontSize")
        if not self.font_family.strip():
            raise InvalidValueError("fontFamily must not be blank", field="fontFamily")
        validate_color(self.color, "color")

    @property
    def baseline_y(self) -> int:
        return self.y + self.font_size

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "id": _wire_id(self.element_id),
            "x": self.x,
            "y": self.y,
            "text": self.text,
            "fontSize": self.font_size,
            "fontFamily": self.font_family,
            "color": self.color,
        }


@dataclass(frozen=True)
class ImageElement:
    """Image stretched into ``(x, y, width, height)`` from embedded bytes or a URL."""

    x: int
    y: int
    width: int
    height: int
    image_data: bytes | None = None
    image_url: str | None = None
    element_id: int | None = None

    kind: ClassVar[str] = "image"

    def __post_init__(self) -> None:
        has_data = bool(self.image_data)
        has_url = bool(self.image_url)
        if not has_data and not has_url:
            raise MissingFieldError("image file or url is required", field="image")
        if has_data and has_url:
            raise InvalidValueError("provide either image data or an image url, not both", field="image")
        if has_url:
            scheme = urlparse(self.image_url).scheme.lower()
            if scheme not in IMAGE_URL_SCHEMES:
                raise InvalidValueError(f"unsupported image url scheme: {scheme or '<none>'}", field="imageUrl")
        _require_positive(self.width, "width")
        _require_positive(self.height, "height")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.kind,
            "id": _wire_id(self.element_id),
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        if self.image_data:
            payload["imageData"] = base64.b64encode(self.image_data).decode("ascii")
        else:
            payload["imageUrl"] = self.image_url
        return payload


Element: TypeAlias = RectangleElement | CircleElement | TextElement | ImageElement


def rectangle_from_fields(fields: Mapping[str, Any]) -> RectangleElement:
    return RectangleElement(
        x=coerce_int(fields, "x", default=0),
        y=coerce_int(fields, "y", default=0),
        width=coerce_int(fields, "width", default=DEFAULT_BOX_SIZE),
        height=coerce_int(fields, "height", default=DEFAULT_BOX_SIZE),
        fill_color=coerce_color(fields, "fillColor", default=DEFAULT_COLOR),
        stroke_color=coerce_color(fields, "strokeColor", default=DEFAULT_COLOR),
        stroke_width=coerce_int(fields, "strokeWidth", default=DEFAULT_STROKE_WIDTH),
    )


def circle_from_fields(fields: Mapping[str, Any]) -> CircleElement:
    return CircleElement(
        x=coerce_int(fields, "x", default=0),
        y=coerce_int(fields, "y", default=0),
        radius=coerce_int(fields, "radius", default=DEFAULT_RADIUS),
        fill_color=coerce_color(fields, "fillColor", default=DEFAULT_COLOR),
        stroke_color=coerce_color(fields, "strokeColor", default=DEFAULT_COLOR),
        stroke_width=coerce_int(fields, "strokeWidth", default=DEFAULT_STROKE_WIDTH),
    )


def text_from_fields(fields: Mapping[str, Any]) -> TextElement:
    return TextElement(
        x=coerce_int(fields, "x", default=0),
        y=coerce_int(fields, "y", default=0),
        text=coerce_text(fields, "text"),
        font_size=coerce_int(fields, "fontSize", default=DEFAULT_FONT_SIZE),
        font_family=coerce_text(fields, "fontFamily", default=DEFAULT_FONT_FAMILY),
        color=coerce_color(fields, "color", default=DEFAULT_COLOR),
    )


def image_from_fields(fields: Mapping[str, Any]) -> ImageElement:
    url = fields.get("imageUrl")
    if url is not None and not isinstance(url, str):
        raise InvalidValueError("imageUrl must be a string", field="imageUrl")
    return ImageElement(
        x=coerce_int(fields, "x", default=0),
        y=coerce_int(fields, "y", default=0),
        width=coerce_int(fields, "width", default=DEFAULT_BOX_SIZE),
        height=coerce_int(fields, "height", default=DEFAULT_BOX_SIZE),
        image_data=_image_bytes(fields.get("imageData")),
        image_url=url.strip() if url else None,
    )


ELEMENT_BUILDERS: dict[str, Callable[[Mapping[str, Any]], Element]] = {
    RectangleElement.kind: rectangle_from_fields,
    CircleElement.kind: circle_from_fields,
    TextElement.kind: text_from_fields,
    ImageElement.kind: image_from_fields,
}


def element_from_dict(payload: Mapping[str, Any]) -> Element:
    """Rebuild an element from its wire form, keeping ``id`` when present."""
    kind = payload.get("type")
    builder = ELEMENT_BUILDERS.get(kind) if isinstance(kind, str) else None
    if builder is None:
        raise InvalidValueError(f"unknown element type: {kind!r}", field="type")
    element = builder(payload)
    if payload.get("id") is not None:
        element_id = coerce_int(payload, "id", minimum=1)
        return _with_id(element, element_id)
    return element


def _with_id(element: Element, element_id: int) -> Element:
    return replace(element, element_id=element_id)


def _image_bytes(raw: Any) -> bytes | None:
    if raw is None or raw == "" or raw == b"":
        return None
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        try:
            return base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidValueError("imageData must be base64 encoded", field="imageData") from exc
    raise InvalidValueError("imageData must be bytes or a base64 string", field="imageData")


def _wire_id(element_id: int | None) -> str | None:
    return None if element_id is None else str(element_id)
