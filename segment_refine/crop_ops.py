import numpy as np

def clamp(v, lo, hi):
    return max(lo, min(hi, v))

def trim_bounds(rgba):
    """
    Tight (left, top, width, height) box of pixels with non-zero alpha,
    or None when every pixel is transparent.
    """
    alpha = np.asarray(rgba)[..., 3]
    ys, xs = np.nonzero(alpha)
    if len(xs) == 0:
        return None

    L, R = int(xs.min()), int(xs.max())
    T, B = int(ys.min()), int(ys.max())
    return L, T, R - L + 1, B - T + 1

def apply_crop(img, bbox):
    """Copy of the (left, top, width, height) region, clamped to the image."""
    L, T, w, h = bbox
    H, W = img.shape[:2]

    R = clamp(L + w, 0, W)
    B = clamp(T + h, 0, H)
    L = clamp(L, 0, W)
    T = clamp(T, 0, H)

    if R <= L or B <= T:
        raise ValueError("Invalid crop")

    return img[T:B, L:R].copy(), (L, T, R - L, B - T)
