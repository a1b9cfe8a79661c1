import logging
from dataclasses import dataclass
from typing import Tuple
import numpy as np

from cutout_utils.config import CUTOUT_COLORS_NP, OUTPUT_MIME_TYPE
from cutout_utils.image_io import encode_png
from cutout_utils.mask_utils import rasterize_outlines
from .crop_ops import trim_bounds, apply_crop

logger = logging.getLogger(__name__)


class RenderContextError(RuntimeError):
    pass


@dataclass(frozen=True)
class RenderedImage:
    pixels: np.ndarray
    bbox: Tuple[int, int, int, int]
    data: bytes
    mime_type: str = OUTPUT_MIME_TYPE


def _canvas_shape(bitmap):
    if bitmap is None:
        raise RenderContextError("No bitmap to draw on")
    shape = np.shape(bitmap)
    if len(shape) != 3 or shape[2] not in (3, 4) or shape[0] <= 0 or shape[1] <= 0:
        raise RenderContextError(f"Cannot build a drawing surface for bitmap of shape {shape}")
    return shape[0], shape[1]


def composite_source_in(bitmap, outlines):
    """Bitmap pixels kept only inside the filled outlines, transparent elsewhere."""
    H, W = _canvas_shape(bitmap)
    inside = rasterize_outlines(outlines, W, H)

    src = np.asarray(bitmap, dtype=np.uint8)
    out = np.zeros((H, W, 4), np.uint8)
    out[inside, :3] = src[inside, :3]
    out[inside, 3] = src[inside, 3] if src.shape[2] == 4 else 255
    return out


def recolor(region):
    """Non-transparent -> opaque subject color, transparent -> opaque background."""
    keep = region[..., 3] != 0
    out = np.empty_like(region)
    out[keep] = CUTOUT_COLORS_NP["subject"]
    out[~keep] = CUTOUT_COLORS_NP["background"]
    return out


def render_cutout(bitmap, outlines):
    """
    Two-tone cutout of the bitmap for the traced outlines, or None when
    the outlines cover no visible pixel.
    """
    H, W = _canvas_shape(bitmap)

    composited = composite_source_in(bitmap, outlines)
    bbox = trim_bounds(composited)
    if bbox is None:
        logger.debug("Empty selection, nothing to render")
        return None

    region, bbox = apply_crop(composited, bbox)
    L, T, w, h = bbox

    canvas = np.empty((H, W, 4), np.uint8)
    canvas[:] = CUTOUT_COLORS_NP["background"]
    canvas[T:T + h, L:L + w] = recolor(region)

    logger.debug("Rendered cutout, bbox=%s", bbox)
    return RenderedImage(pixels=canvas, bbox=bbox, data=encode_png(canvas))
