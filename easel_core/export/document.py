from __future__ import annotations

from dataclasses import dataclass
import io
import logging

from easel_core.core.errors import ExportError
from easel_core.core.scene_store import Scene
from easel_core.render.scene_renderer import SceneRenderer


LOGGER = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PNG_CONTENT_TYPE = "image/png"
PDF_FILENAME = "canvas-export.pdf"
PNG_FILENAME = "canvas-preview.png"
PDF_POINTS_PER_INCH = 72.0
DEFAULT_JPEG_QUALITY = 85


@dataclass(frozen=True)
class ExportedDocument:
    content: bytes
    content_type: str
    filename: str
    width: int
    height: int


def export_pdf(scene: Scene, renderer: SceneRenderer, *, quality: int = DEFAULT_JPEG_QUALITY) -> ExportedDocument:
    """Rasterize the scene and embed it full-bleed on one page of ``width x height`` points.

    The raster is stored as a JPEG image stream; ``quality`` trades size for
    fidelity. Image elements that fail to load are already degraded to
    placeholders by the renderer, so they never abort the export.
    """
    if not 1 <= quality <= 100:
        raise ValueError("quality must be within 1..100")
    try:
        image = renderer.render_to_image(scene).convert("RGB")
        out = io.BytesIO()
        image.save(
            out,
            format="PDF",
            resolution=PDF_POINTS_PER_INCH,
            quality=quality,
            title="Canvas Export",
            producer="easel",
        )
    except Exception as exc:  # noqa: BLE001
        raise ExportError(f"pdf export failed: {exc}") from exc
    content = out.getvalue()
    LOGGER.info("exported pdf %dx%d elements=%d bytes=%d", scene.width, scene.height, len(scene.elements), len(content))
    return ExportedDocument(
        content=content,
        content_type=PDF_CONTENT_TYPE,
        filename=PDF_FILENAME,
        width=scene.width,
        height=scene.height,
    )


def export_png(scene: Scene, renderer: SceneRenderer) -> ExportedDocument:
    try:
        image = renderer.render_to_image(scene)
        out = io.BytesIO()
        image.save(out, format="PNG")
    except Exception as exc:  # noqa: BLE001
        raise ExportError(f"png export failed: {exc}") from exc
    return ExportedDocument(
        content=out.getvalue(),
        content_type=PNG_CONTENT_TYPE,
        filename=PNG_FILENAME,
        width=scene.width,
        height=scene.height,
    )
