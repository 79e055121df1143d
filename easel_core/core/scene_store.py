from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import threading
from typing import Any, Mapping

from .elements import (
    Element,
    circle_from_fields,
    element_from_dict,
    image_from_fields,
    rectangle_from_fields,
    text_from_fields,
)
from .errors import InvalidDimensionError, InvalidValueError
from .fields import coerce_int


LOGGER = logging.getLogger(__name__)

DEFAULT_SCENE_WIDTH = 800
DEFAULT_SCENE_HEIGHT = 600


@dataclass(frozen=True)
class Scene:
    """Immutable point-in-time canvas state; ``elements`` is paint order."""

    width: int
    height: int
    elements: tuple[Element, ...] = ()

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidDimensionError("scene width and height must be > 0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "elements": [element.to_dict() for element in self.elements],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Scene":
        width, height = _validate_dimensions(payload.get("width"), payload.get("height"))
        rows = payload.get("elements", [])
        if not isinstance(rows, list):
            raise InvalidValueError("elements must be a list", field="elements")
        return cls(width=width, height=height, elements=tuple(element_from_dict(row) for row in rows))


class SceneStore:
    """Process-wide owner of the scene; every mutation is atomic under one lock."""

    def __init__(self, width: int = DEFAULT_SCENE_WIDTH, height: int = DEFAULT_SCENE_HEIGHT) -> None:
        width, height = _validate_dimensions(width, height)
        self._lock = threading.Lock()
        self._next_element_id = 1
        self._scene = Scene(width=width, height=height)

    def snapshot(self) -> Scene:
        with self._lock:
            return self._scene

    def init(self, width: Any, height: Any) -> Scene:
        width, height = _validate_dimensions(width, height)
        with self._lock:
            self._scene = Scene(width=width, height=height)
            scene = self._scene
        LOGGER.info("scene initialized: %dx%d", width, height)
        return scene

    def clear(self) -> Scene:
        with self._lock:
            self._scene = replace(self._scene, elements=())
            scene = self._scene
        LOGGER.info("scene cleared: %dx%d", scene.width, scene.height)
        return scene

    def append(self, element: Element) -> tuple[Element, Scene]:
        with self._lock:
            stored = replace(element, element_id=self._next_element_id)
            self._next_element_id += 1
            self._scene = replace(self._scene, elements=self._scene.elements + (stored,))
            scene = self._scene
        LOGGER.debug("appended %s element id=%d", stored.kind, stored.element_id)
        return stored, scene

    def add_rectangle(self, fields: Mapping[str, Any]) -> tuple[Element, Scene]:
        return self.append(rectangle_from_fields(fields))

    def add_circle(self, fields: Mapping[str, Any]) -> tuple[Element, Scene]:
        return self.append(circle_from_fields(fields))

    def add_text(self, fields: Mapping[str, Any]) -> tuple[Element, Scene]:
        return self.append(text_from_fields(fields))

    def add_image(self, fields: Mapping[str, Any]) -> tuple[Element, Scene]:
        return self.append(image_from_fields(fields))


def _validate_dimensions(width: Any, height: Any) -> tuple[int, int]:
    fields = {"width": width, "height": height}
    return (
        coerce_int(fields, "width", minimum=1, error=InvalidDimensionError),
        coerce_int(fields, "height", minimum=1, error=InvalidDimensionError),
    )
