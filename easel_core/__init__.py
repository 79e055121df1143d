from .core import (
    CircleElement,
    Element,
    ExportError,
    ImageElement,
    ImageLoadError,
    InvalidDimensionError,
    InvalidValueError,
    MissingFieldError,
    RectangleElement,
    Scene,
    SceneError,
    SceneStore,
    TextElement,
)
from .export import ExportedDocument, export_pdf, export_png
from .render import DrawingSurface, ImageLoader, MatrixSurface, SceneRenderer

__all__ = [
    "CircleElement",
    "DrawingSurface",
    "Element",
    "ExportError",
    "ExportedDocument",
    "ImageElement",
    "ImageLoadError",
    "ImageLoader",
    "InvalidDimensionError",
    "InvalidValueError",
    "MatrixSurface",
    "MissingFieldError",
    "RectangleElement",
    "Scene",
    "SceneError",
    "SceneRenderer",
    "SceneStore",
    "TextElement",
    "export_pdf",
    "export_png",
]
