from .elements import (
    CircleElement,
    Element,
    ImageElement,
    RectangleElement,
    TextElement,
    element_from_dict,
)
from .errors import (
    ExportError,
    ImageLoadError,
    InvalidDimensionError,
    InvalidValueError,
    MissingFieldError,
    SceneError,
)
from .scene_store import DEFAULT_SCENE_HEIGHT, DEFAULT_SCENE_WIDTH, Scene, SceneStore

__all__ = [
    "CircleElement",
    "DEFAULT_SCENE_HEIGHT",
    "DEFAULT_SCENE_WIDTH",
    "Element",
    "ExportError",
    "ImageElement",
    "ImageLoadError",
    "InvalidDimensionError",
    "InvalidValueError",
    "MissingFieldError",
    "RectangleElement",
    "Scene",
    "SceneError",
    "SceneStore",
    "TextElement",
    "element_from_dict",
]
