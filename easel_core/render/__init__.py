from .colors import RGBA, WHITE, parse_color
from .image_source import ImageLoader, PendingImages, decode_image, fetch_url, normalize_upload
from .scene_renderer import FALLBACK_CAPTION, FALLBACK_FILL, SceneRenderer, draw_image_placeholder
from .surface import DrawingSurface, MatrixSurface

__all__ = [
    "DrawingSurface",
    "FALLBACK_CAPTION",
    "FALLBACK_FILL",
    "ImageLoader",
    "MatrixSurface",
    "PendingImages",
    "RGBA",
    "SceneRenderer",
    "WHITE",
    "decode_image",
    "draw_image_placeholder",
    "fetch_url",
    "normalize_upload",
    "parse_color",
]
