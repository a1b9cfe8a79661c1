import base64
import io

import numpy as np
import pytest
from PIL import Image

from cutout_utils.config import EMBEDDING_SHAPE, EMBEDDING_NBYTES
from cutout_utils.image_io import (
    EmbeddingError,
    build_upload_request,
    decode_bitmap,
    decode_embedding,
    to_rgba,
)


def test_decode_embedding_from_base64():
    values = np.arange(np.prod(EMBEDDING_SHAPE), dtype=np.float32).reshape(EMBEDDING_SHAPE)

    emb = decode_embedding(base64.b64encode(values.astype("<f4").tobytes()).decode("ascii"))

    assert emb.shape == EMBEDDING_SHAPE
    assert emb.dtype == np.float32
    np.testing.assert_array_equal(emb, values)


def test_decode_embedding_from_raw_little_endian_bytes():
    raw = np.full(EMBEDDING_SHAPE, 1.5, dtype="<f4").tobytes()
    assert decode_embedding(raw)[0, 0, 0, 0] == 1.5


@pytest.mark.parametrize("payload", [
    base64.b64encode(b"\x00" * (EMBEDDING_NBYTES - 4)).decode(),
    b"\x00" * (EMBEDDING_NBYTES + 4),
    "not base64 !!",
    12345,
])
def test_malformed_embedding_is_rejected(payload):
    with pytest.raises(EmbeddingError):
        decode_embedding(payload)


def test_decode_bitmap_is_rgba(png_blob, rgb_bitmap):
    bitmap = decode_bitmap(png_blob, "image/png")

    assert bitmap.shape == (32, 64, 4)
    np.testing.assert_array_equal(bitmap[..., :3], rgb_bitmap)
    assert (bitmap[..., 3] == 255).all()
    assert not bitmap.flags.writeable


def test_upload_request_is_resized_png(rgb_bitmap):
    req = build_upload_request(rgb_bitmap, (1024, 512))

    assert req["type"] == "image/png"
    assert Image.open(io.BytesIO(req["data"])).size == (1024, 512)


def test_to_rgba():
    assert to_rgba(np.zeros((2, 3), np.uint8)).shape == (2, 3, 4)
    with pytest.raises(ValueError):
        to_rgba(np.zeros((2, 3, 5), np.uint8))
