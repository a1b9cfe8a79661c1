import numpy as np
from skimage.measure import find_contours

from cutout_utils.config import MASK_THRESHOLD

# =========================
# Raw masks
# =========================

def mask_to_array(values, width=None, height=None):
    """
    Normalise a decoder mask to a (H, W) float array. Accepts flat data
    with explicit width/height, or any array that squeezes to 2D
    (e.g. the decoder's (1, 1, H, W) output).
    """
    m = np.asarray(values, dtype=np.float32)
    if width is not None and height is not None:
        m = m.reshape(int(height), int(width))
    else:
        m = np.squeeze(m)
    if m.ndim != 2:
        raise ValueError(f"Mask must be 2D, got shape {m.shape}")
    return m


def binarize(mask):
    return np.asarray(mask) > MASK_THRESHOLD


# =========================
# Tracing
# =========================

def trace_mask(values, display_scale=1.0, width=None, height=None):
    """
    Trace the foreground (value > 0) of a mask into closed polygons.

    Parameters
    ----------
    values : array-like
        Raw mask, see mask_to_array.
    display_scale : float
        Mask grid units -> display pixels.

    Returns
    -------
    list of (N, 2) float arrays of (x, y) vertices, first == last.
    Outer boundaries and hole boundaries are both emitted; fill with
    the even-odd rule.
    """
    fg = binarize(mask_to_array(values, width, height))
    if not fg.any():
        return []

    # pad so every contour closes; 2x nearest upsampling puts straight
    # boundary runs exactly on pixel edges after mapping back
    padded = np.pad(fg, 1).astype(np.float32)
    up = np.repeat(np.repeat(padded, 2, axis=0), 2, axis=1)

    outlines = []
    for c in find_contours(up, 0.5):
        c = _drop_collinear(c)
        if c is None:
            continue
        # (row, col) upsampled index -> (x, y) in mask pixel-edge units
        xy = (c[:, ::-1] + 0.5) / 2.0 - 1.0
        outlines.append(xy * display_scale)
    return outlines


def _drop_collinear(contour):
    pts = contour[:-1]
    prev = np.roll(pts, 1, axis=0)
    nxt = np.roll(pts, -1, axis=0)
    cross = ((pts[:, 0] - prev[:, 0]) * (nxt[:, 1] - pts[:, 1])
             - (pts[:, 1] - prev[:, 1]) * (nxt[:, 0] - pts[:, 0]))
    pts = pts[np.abs(cross) > 1e-9]
    if len(pts) < 3:
        return None
    return np.vstack([pts, pts[:1]])


def outlines_to_svg_paths(outlines, precision=2):
    paths = []
    for poly in outlines:
        pts = np.asarray(poly)
        if len(pts) > 1 and np.allclose(pts[0], pts[-1]):
            pts = pts[:-1]
        if len(pts) == 0:
            continue
        segs = [f"{x:.{precision}f} {y:.{precision}f}" for x, y in pts]
        paths.append("M" + " L".join(segs) + " Z")
    return paths


# =========================
# Rasterising
# =========================

def rasterize_outlines(outlines, width, height):
    """
    Fill outlines onto a (height, width) bool grid with the even-odd rule,
    sampling each pixel at its centre.

    Scanline fill: every edge is cut against the rows whose centre line
    it spans, and a pixel is inside when an odd number of those crossings
    lie to the left of its centre. Outlines are handled together, so holes
    and islands need no special casing.
    """
    filled = np.zeros((height, width), bool)

    edges = [_polygon_edges(p) for p in outlines if len(p) >= 3]
    if not edges or width <= 0 or height <= 0:
        return filled
    p0 = np.concatenate([e[0] for e in edges])
    p1 = np.concatenate([e[1] for e in edges])

    # row r samples y = r + 0.5; an edge crosses it when lo <= y < hi
    lo = np.minimum(p0[:, 1], p1[:, 1])
    hi = np.maximum(p0[:, 1], p1[:, 1])
    r_start = np.clip(np.ceil(lo - 0.5), 0, height).astype(np.int64)
    r_stop = np.clip(np.ceil(hi - 0.5), 0, height).astype(np.int64)
    counts = r_stop - r_start
    keep = counts > 0
    if not keep.any():
        return filled

    counts = counts[keep]
    edge = np.repeat(np.flatnonzero(keep), counts)
    offset = np.arange(counts.sum()) - np.repeat(np.cumsum(counts) - counts, counts)
    rows = np.repeat(r_start[keep], counts) + offset

    x0, y0 = p0[edge, 0], p0[edge, 1]
    x1, y1 = p1[edge, 0], p1[edge, 1]
    xs = x0 + (rows + 0.5 - y0) * (x1 - x0) / (y1 - y0)

    # first pixel whose centre lies right of the crossing; width = off-grid
    cols = np.clip(np.floor(xs + 0.5), 0, width).astype(np.int64)
    toggles = np.zeros((height, width + 1), np.int32)
    np.add.at(toggles, (rows, cols), 1)

    filled[:] = (np.cumsum(toggles, axis=1)[:, :width] & 1).astype(bool)
    return filled


def _polygon_edges(poly):
    pts = np.asarray(poly, dtype=np.float64)
    if not np.array_equal(pts[0], pts[-1]):
        pts = np.vstack([pts, pts[:1]])
    return pts[:-1], pts[1:]
