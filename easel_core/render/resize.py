from __future__ import annotations

import numpy as np
import torch
import torch.nn.functional as F
from PIL import Image


def image_to_rgba_tensor(image: Image.Image) -> torch.Tensor:
    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    return torch.from_numpy(np.array(rgba, dtype=np.uint8))


def resize_rgba_bilinear(rgba: torch.Tensor, target_h: int, target_w: int) -> torch.Tensor:
    if target_h <= 0 or target_w <= 0:
        raise ValueError("target dimensions must be > 0")
    src_h, src_w, _ = rgba.shape
    if src_h == target_h and src_w == target_w:
        return rgba
    src = rgba.to(torch.float32).permute(2, 0, 1).unsqueeze(0)
    out = F.interpolate(src, size=(target_h, target_w), mode="bilinear", align_corners=False)
    out = out.squeeze(0).permute(1, 2, 0).round().clamp(0, 255).to(torch.uint8)
    return out.contiguous()
