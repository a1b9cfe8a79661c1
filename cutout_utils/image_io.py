# cutout_utils/image_io.py

import base64
import binascii
import io
import logging

import cv2
import numpy as np
from PIL import Image

from cutout_utils.config import (
    UPLOAD_MIME_TYPE,
    EMBEDDING_SHAPE,
    EMBEDDING_DTYPE,
    EMBEDDING_NBYTES,
)

logger = logging.getLogger(__name__)


class EmbeddingError(ValueError):
    pass


# ============================================================
# Bitmaps
# ============================================================

def to_rgba(img):
    """Promote an (H, W), (H, W, 3) or (H, W, 4) uint8 array to RGBA."""
    img = np.asarray(img)
    if img.ndim == 2:
        img = np.stack([img] * 3, axis=-1)
    if img.ndim != 3 or img.shape[2] not in (3, 4):
        raise ValueError(f"Unsupported bitmap shape {img.shape}")
    if img.shape[2] == 3:
        alpha = np.full(img.shape[:2] + (1,), 255, np.uint8)
        img = np.concatenate([img.astype(np.uint8), alpha], axis=-1)
    return img.astype(np.uint8)


def decode_bitmap(blob: bytes, mime_type=None):
    im = Image.open(io.BytesIO(blob))
    im.load()
    logger.debug("Decoded %s bitmap %dx%d (%s)", mime_type or "image", im.width, im.height, im.mode)
    bitmap = np.array(im.convert("RGBA"))
    bitmap.setflags(write=False)
    return bitmap


def encode_png(pixels) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(np.asarray(pixels, dtype=np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


def build_upload_request(bitmap, size):
    """
    PNG of the bitmap resized to size (w, h), as {"data": bytes, "type": mime}.
    """
    H, W = bitmap.shape[:2]
    interp = cv2.INTER_AREA if size[0] < W else cv2.INTER_LINEAR
    resized = cv2.resize(np.ascontiguousarray(to_rgba(bitmap)), size, interpolation=interp)
    logger.debug("Upload raster %dx%d -> %dx%d", W, H, size[0], size[1])

    return {"data": encode_png(resized), "type": UPLOAD_MIME_TYPE}


# ============================================================
# Embeddings
# ============================================================

def decode_embedding(payload):
    """
    Turn the extractor's response (base64 text or raw bytes of
    little-endian float32) into a [1, 256, 64, 64] tensor.
    """
    if isinstance(payload, str):
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EmbeddingError(f"Embedding payload is not valid base64: {e}") from e
    elif isinstance(payload, (bytes, bytearray, memoryview)):
        raw = bytes(payload)
    else:
        raise EmbeddingError(f"Unsupported embedding payload type {type(payload).__name__}")

    if len(raw) != EMBEDDING_NBYTES:
        raise EmbeddingError(
            f"Embedding payload has {len(raw)} bytes, expected {EMBEDDING_NBYTES}"
        )

    arr = np.frombuffer(raw, dtype=EMBEDDING_DTYPE).astype(np.float32).reshape(EMBEDDING_SHAPE)
    arr.setflags(write=False)
    return arr
