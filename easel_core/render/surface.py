from __future__ import annotations

import math
from typing import Protocol

import numpy as np
import torch
from PIL import Image

from .colors import RGBA
from .fonts import render_text_mask
from .resize import image_to_rgba_tensor, resize_rgba_bilinear


class DrawingSurface(Protocol):
    """Primitive drawing capability the scene renderer paints through."""

    def reset(self, width: int, height: int) -> None:
        ...

    def fill_rect(self, x: int, y: int, width: int, height: int, color: RGBA) -> None:
        ...

    def stroke_rect(self, x: int, y: int, width: int, height: int, color: RGBA, line_width: int) -> None:
        ...

    def fill_ellipse(self, cx: float, cy: float, rx: float, ry: float, color: RGBA) -> None:
        ...

    def stroke_ellipse(self, cx: float, cy: float, rx: float, ry: float, color: RGBA, line_width: int) -> None:
        ...

    def draw_baseline_text(
        self, x: int, baseline_y: int, text: str, *, font_family: str, font_size: int, color: RGBA
    ) -> None:
        ...

    def draw_image_stretched(self, image: Image.Image, x: int, y: int, width: int, height: int) -> None:
        ...


class MatrixSurface:
    """Torch RGBA255 ``(H, W, 4)`` raster surface.

    Coverage is binary and sampled at pixel centres, so the same calls always
    produce the same pixels. Geometry outside the surface is clipped silently.
    """

    def __init__(self) -> None:
        self._frame: torch.Tensor | None = None

    @property
    def width(self) -> int:
        return int(self._require_frame().shape[1])

    @property
    def height(self) -> int:
        return int(self._require_frame().shape[0])

    def reset(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("surface dimensions must be > 0")
        self._frame = torch.zeros((height, width, 4), dtype=torch.uint8)

    def to_tensor(self) -> torch.Tensor:
        return self._require_frame().clone()

    def to_image(self) -> Image.Image:
        return Image.fromarray(self._require_frame().numpy().copy())

    def fill_rect(self, x: int, y: int, width: int, height: int, color: RGBA) -> None:
        if width <= 0 or height <= 0:
            return
        region = self._clip(x, y, x + width, y + height)
        if region is None:
            return
        x0, y0, x1, y1 = region
        mask = torch.ones((y1 - y0, x1 - x0), dtype=torch.bool)
        self._blend_mask(mask, x=x0, y=y0, color=color)

    def stroke_rect(self, x: int, y: int, width: int, height: int, color: RGBA, line_width: int) -> None:
        # Bands of ``line_width`` pixels straddle each edge of the rectangle path.
        if line_width <= 0 or width < 0 or height < 0:
            return
        lead = line_width // 2
        ox0, oy0 = x - lead, y - lead
        ox1, oy1 = x + width - lead + line_width, y + height - lead + line_width
        ix0, iy0 = ox0 + line_width, oy0 + line_width
        ix1, iy1 = x + width - lead, y + height - lead
        region = self._clip(ox0, oy0, ox1, oy1)
        if region is None:
            return
        x0, y0, x1, y1 = region
        gx, gy = _pixel_grid(x0, y0, x1, y1)
        inner = (gx >= ix0) & (gx < ix1) & (gy >= iy0) & (gy < iy1)
        self._blend_mask(~inner, x=x0, y=y0, color=color)

    def fill_ellipse(self, cx: float, cy: float, rx: float, ry: float, color: RGBA) -> None:
        if rx <= 0 or ry <= 0:
            return
        region = self._clip(math.floor(cx - rx), math.floor(cy - ry), math.ceil(cx + rx), math.ceil(cy + ry))
        if region is None:
            return
        x0, y0, x1, y1 = region
        gx, gy = _pixel_grid(x0, y0, x1, y1)
        mask = _ellipse_mask(gx + 0.5, gy + 0.5, cx, cy, rx, ry)
        self._blend_mask(mask, x=x0, y=y0, color=color)

    def stroke_ellipse(self, cx: float, cy: float, rx: float, ry: float, color: RGBA, line_width: int) -> None:
        if line_width <= 0 or rx <= 0 or ry <= 0:
            return
        half = line_width / 2.0
        orx, ory = rx + half, ry + half
        irx, iry = rx - half, ry - half
        region = self._clip(math.floor(cx - orx), math.floor(cy - ory), math.ceil(cx + orx), math.ceil(cy + ory))
        if region is None:
            return
        x0, y0, x1, y1 = region
        gx, gy = _pixel_grid(x0, y0, x1, y1)
        px, py = gx + 0.5, gy + 0.5
        mask = _ellipse_mask(px, py, cx, cy, orx, ory)
        if irx > 0 and iry > 0:
            mask &= ~_ellipse_mask(px, py, cx, cy, irx, iry)
        self._blend_mask(mask, x=x0, y=y0, color=color)

    def draw_baseline_text(
        self, x: int, baseline_y: int, text: str, *, font_family: str, font_size: int, color: RGBA
    ) -> None:
        glyphs = render_text_mask(text, font_family, font_size)
        self._blend_alpha_mask(glyphs.alpha, x=x + glyphs.x_offset, y=baseline_y + glyphs.y_offset, color=color)

    def draw_image_stretched(self, image: Image.Image, x: int, y: int, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            return
        region = self._clip(x, y, x + width, y + height)
        if region is None:
            return
        x0, y0, x1, y1 = region
        stretched = resize_rgba_bilinear(image_to_rgba_tensor(image), target_h=height, target_w=width)
        patch = stretched[y0 - y : y1 - y, x0 - x : x1 - x]
        frame = self._require_frame()
        alpha = patch[:, :, 3:4].to(torch.float32) / 255.0
        dst = frame[y0:y1, x0:x1, :3].to(torch.float32)
        src = patch[:, :, :3].to(torch.float32)
        frame[y0:y1, x0:x1, :3] = torch.clamp(torch.round(src * alpha + dst * (1.0 - alpha)), 0, 255).to(torch.uint8)
        frame[y0:y1, x0:x1, 3] = 255

    def _require_frame(self) -> torch.Tensor:
        if self._frame is None:
            raise RuntimeError("reset must be called before drawing")
        return self._frame

    def _clip(self, x0: int, y0: int, x1: int, y1: int) -> tuple[int, int, int, int] | None:
        frame = self._require_frame()
        cx0 = max(0, int(x0))
        cy0 = max(0, int(y0))
        cx1 = min(frame.shape[1], int(x1))
        cy1 = min(frame.shape[0], int(y1))
        if cx1 <= cx0 or cy1 <= cy0:
            return None
        return cx0, cy0, cx1, cy1

    def _blend_mask(self, mask: torch.Tensor, *, x: int, y: int, color: RGBA) -> None:
        frame = self._require_frame()
        h, w = mask.shape
        if h <= 0 or w <= 0 or not bool(mask.any()):
            return
        alpha = color[3] / 255.0
        if alpha <= 0:
            return
        region = frame[y : y + h, x : x + w]
        dst = region[:, :, :3].to(torch.float32)
        src = torch.tensor(color[:3], dtype=torch.float32).view(1, 1, 3)
        blended = torch.clamp(torch.round(src * alpha + dst * (1.0 - alpha)), 0, 255).to(torch.uint8)
        region[:, :, :3] = torch.where(mask.unsqueeze(-1), blended, region[:, :, :3])
        region[:, :, 3] = torch.where(mask, torch.tensor(255, dtype=torch.uint8), region[:, :, 3])

    def _blend_alpha_mask(self, mask: np.ndarray, *, x: int, y: int, color: RGBA) -> None:
        frame = self._require_frame()
        if mask.ndim != 2:
            return
        h, w = mask.shape
        if h <= 0 or w <= 0:
            return
        region = self._clip(x, y, x + w, y + h)
        if region is None:
            return
        x0, y0, x1, y1 = region
        cov = mask[y0 - y : y1 - y, x0 - x : x1 - x].astype(np.float32) / 255.0
        src_alpha = cov * (color[3] / 255.0)
        if not np.any(src_alpha > 0):
            return

        patch = frame[y0:y1, x0:x1]
        dst_rgb = patch[:, :, :3].to(torch.float32).numpy()
        dst_alpha = patch[:, :, 3].to(torch.float32).numpy() / 255.0
        src_rgb = np.asarray(color[:3], dtype=np.float32).reshape(1, 1, 3)

        out_alpha = src_alpha + dst_alpha * (1.0 - src_alpha)
        out_rgb_num = src_rgb * src_alpha[:, :, None] + dst_rgb * dst_alpha[:, :, None] * (1.0 - src_alpha[:, :, None])
        safe = np.where(out_alpha > 1e-6, out_alpha, 1.0)
        out_rgb = out_rgb_num / safe[:, :, None]

        patch[:, :, :3] = torch.from_numpy(np.clip(np.round(out_rgb), 0, 255).astype(np.uint8))
        patch[:, :, 3] = torch.from_numpy(np.clip(np.round(out_alpha * 255.0), 0, 255).astype(np.uint8))


def _pixel_grid(x0: int, y0: int, x1: int, y1: int) -> tuple[torch.Tensor, torch.Tensor]:
    xs = torch.arange(x0, x1, dtype=torch.float32)
    ys = torch.arange(y0, y1, dtype=torch.float32)
    gy, gx = torch.meshgrid(ys, xs, indexing="ij")
    return gx, gy


def _ellipse_mask(px: torch.Tensor, py: torch.Tensor, cx: float, cy: float, rx: float, ry: float) -> torch.Tensor:
    return ((px - cx) / rx) ** 2 + ((py - cy) / ry) ** 2 <= 1.0
