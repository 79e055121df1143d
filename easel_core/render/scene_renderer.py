from __future__ import annotations

import logging

import torch
from PIL import Image

from easel_core.core.elements import CircleElement, Element, ImageElement, RectangleElement, TextElement
from easel_core.core.errors import ImageLoadError
from easel_core.core.scene_store import Scene

from .colors import WHITE, parse_color
from .image_source import ImageLoader, PendingImages
from .surface import DrawingSurface, MatrixSurface


LOGGER = logging.getLogger(__name__)

FALLBACK_FILL = "#cccccc"
FALLBACK_CAPTION = "image failed to load"
FALLBACK_CAPTION_COLOR = "#555555"
FALLBACK_CAPTION_FONT_FAMILY = "Arial"
FALLBACK_CAPTION_SIZE = 12
FALLBACK_CAPTION_PADDING = 4


class SceneRenderer:
    """Paints a scene snapshot onto any drawing surface in insertion order."""

    def __init__(self, image_loader: ImageLoader | None = None) -> None:
        self._images = image_loader or ImageLoader()

    @property
    def image_loader(self) -> ImageLoader:
        return self._images

    def render(self, scene: Scene, surface: DrawingSurface) -> None:
        surface.reset(scene.width, scene.height)
        surface.fill_rect(0, 0, scene.width, scene.height, WHITE)
        pending = self._images.prefetch(e for e in scene.elements if isinstance(e, ImageElement))
        try:
            for element in scene.elements:
                self._draw_element(surface, element, pending)
        finally:
            self._images.release(pending)

    def render_to_tensor(self, scene: Scene) -> torch.Tensor:
        surface = MatrixSurface()
        self.render(scene, surface)
        return surface.to_tensor()

    def render_to_image(self, scene: Scene) -> Image.Image:
        surface = MatrixSurface()
        self.render(scene, surface)
        return surface.to_image()

    def _draw_element(self, surface: DrawingSurface, element: Element, pending: PendingImages) -> None:
        if isinstance(element, RectangleElement):
            surface.fill_rect(element.x, element.y, element.width, element.height, parse_color(element.fill_color))
            surface.stroke_rect(
                element.x,
                element.y,
                element.width,
                element.height,
                parse_color(element.stroke_color),
                element.stroke_width,
            )
            return
        if isinstance(element, CircleElement):
            cx, cy = element.center
            r = element.radius
            surface.fill_ellipse(cx, cy, r, r, parse_color(element.fill_color))
            surface.stroke_ellipse(cx, cy, r, r, parse_color(element.stroke_color), element.stroke_width)
            return
        if isinstance(element, TextElement):
            surface.draw_baseline_text(
                element.x,
                element.baseline_y,
                element.text,
                font_family=element.font_family,
                font_size=element.font_size,
                color=parse_color(element.color),
            )
            return
        if isinstance(element, ImageElement):
            self._draw_image(surface, element, pending)
            return
        raise TypeError(f"Unsupported element: {type(element)!r}")

    def _draw_image(self, surface: DrawingSurface, element: ImageElement, pending: PendingImages) -> None:
        try:
            image = self._images.load(element, pending)
        except ImageLoadError as exc:
            LOGGER.warning("image element id=%s failed to load; drawing placeholder: %s", element.element_id, exc)
            draw_image_placeholder(surface, element.x, element.y, element.width, element.height)
            return
        surface.draw_image_stretched(image, element.x, element.y, element.width, element.height)


def draw_image_placeholder(surface: DrawingSurface, x: int, y: int, width: int, height: int) -> None:
    surface.fill_rect(x, y, width, height, parse_color(FALLBACK_FILL))
    top = y + FALLBACK_CAPTION_PADDING
    surface.draw_baseline_text(
        x + FALLBACK_CAPTION_PADDING,
        top + FALLBACK_CAPTION_SIZE,
        FALLBACK_CAPTION,
        font_family=FALLBACK_CAPTION_FONT_FAMILY,
        font_size=FALLBACK_CAPTION_SIZE,
        color=parse_color(FALLBACK_CAPTION_COLOR),
    )
