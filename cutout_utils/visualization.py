import numpy as np
import matplotlib.pyplot as plt

from cutout_utils.config import OUTLINE_COLOR


def plot_outlines(bitmap, outlines, clicks=(), ax=None, title="Traced outlines"):
    """
    Draw traced outlines (and the clicks that produced them) over the bitmap.
    """
    if ax is None:
        _, ax = plt.subplots()

    ax.imshow(bitmap, interpolation="nearest")
    color = np.array(OUTLINE_COLOR) / 255.0
    for poly in outlines:
        poly = np.asarray(poly)
        ax.plot(poly[:, 0], poly[:, 1], color=color, linewidth=1)

    if len(clicks):
        pts = np.asarray(clicks, dtype=np.float32)
        ax.plot(pts[:, 0], pts[:, 1], "go")

    ax.set_title(title)
    ax.set_axis_off()
    return ax


def plot_cutout(bitmap, rendered, title="Cutout"):
    fig, axs = plt.subplots(1, 2, figsize=(10, 5))
    axs[0].imshow(bitmap);  axs[0].set_title("Original")
    if rendered is not None:
        axs[1].imshow(rendered.pixels, interpolation="nearest")
        L, T, w, h = rendered.bbox
        axs[1].add_patch(plt.Rectangle((L - 0.5, T - 0.5), w, h, fill=False, edgecolor="red", linestyle="--"))
    axs[1].set_title(title)
    for ax in axs: ax.axis("off")
    plt.tight_layout()
    return fig
