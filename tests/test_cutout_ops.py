import io

import numpy as np
import pytest
from PIL import Image

from cutout_utils.mask_utils import trace_mask
from segment_refine.crop_ops import apply_crop, trim_bounds
from segment_refine.cutout_ops import RenderContextError, composite_source_in, render_cutout

WHITE = [255, 255, 255, 255]
BLACK = [0, 0, 0, 255]


@pytest.fixture
def bitmap():
    rng = np.random.default_rng(11)
    return rng.integers(0, 256, size=(10, 12, 3), dtype=np.uint8)


def test_no_outlines_renders_nothing(bitmap):
    assert render_cutout(bitmap, []) is None


def test_square_scenario(bitmap):
    m = np.zeros((10, 12))
    m[2:6, 3:8] = 1

    out = render_cutout(bitmap, trace_mask(m))

    assert out.bbox == (3, 2, 5, 4)
    assert out.pixels.shape == (10, 12, 4)
    inside = np.zeros((10, 12), bool)
    inside[2:6, 3:8] = True
    assert (out.pixels[inside] == BLACK).all()
    assert (out.pixels[~inside] == WHITE).all()


def test_hole_inside_box_is_white(bitmap):
    m = np.zeros((10, 12))
    m[1:8, 2:9] = 1
    m[3:5, 4:6] = 0

    out = render_cutout(bitmap, trace_mask(m))

    assert out.bbox == (2, 1, 7, 7)
    assert (out.pixels[3:5, 4:6] == WHITE).all()
    assert (out.pixels[1, 2] == BLACK).all()


def test_transparent_source_pixels_are_trimmed():
    bitmap = np.full((6, 6, 4), 200, np.uint8)
    bitmap[:, :2, 3] = 0
    m = np.ones((6, 6))

    out = render_cutout(bitmap, trace_mask(m))

    assert out.bbox == (2, 0, 4, 6)
    assert (out.pixels[:, :2] == WHITE).all()


def test_source_in_keeps_bitmap_color(bitmap):
    m = np.zeros((10, 12))
    m[4, 5] = 1

    comp = composite_source_in(bitmap, trace_mask(m))

    assert comp[4, 5, :3].tolist() == bitmap[4, 5].tolist()
    assert comp[4, 5, 3] == 255
    assert comp[..., 3].sum() == 255


def test_png_payload_matches_pixels(bitmap):
    m = np.zeros((10, 12))
    m[0:3, 0:3] = 1

    out = render_cutout(bitmap, trace_mask(m))
    decoded = np.array(Image.open(io.BytesIO(out.data)))

    assert out.mime_type == "image/png"
    np.testing.assert_array_equal(decoded, out.pixels)


def test_rendering_is_idempotent(bitmap):
    outlines = trace_mask(np.random.default_rng(2).normal(size=(10, 12)))

    a = render_cutout(bitmap, outlines)
    b = render_cutout(bitmap, outlines)

    assert a.bbox == b.bbox
    assert a.data == b.data


@pytest.mark.parametrize("bad", [None, np.zeros((4, 4)), np.zeros((0, 5, 3)), np.zeros((4, 4, 2))])
def test_unusable_surface_raises(bad):
    with pytest.raises(RenderContextError):
        render_cutout(bad, [])


def test_trim_bounds():
    rgba = np.zeros((5, 7, 4), np.uint8)
    assert trim_bounds(rgba) is None

    rgba[1, 2, 3] = 1
    rgba[3, 5, 3] = 9
    assert trim_bounds(rgba) == (2, 1, 4, 3)


def test_apply_crop_clamps_and_rejects_empty():
    img = np.arange(20).reshape(4, 5)

    region, bbox = apply_crop(img, (3, 2, 10, 10))
    assert bbox == (3, 2, 2, 2)
    assert region.tolist() == [[13, 14], [18, 19]]

    with pytest.raises(ValueError):
        apply_crop(img, (5, 0, 1, 1))
