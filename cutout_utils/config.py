import numpy as np

# =========================
# Resolution targets
# =========================

# long edge of the raster sent to the embedding extractor
UPLOAD_IMAGE_SIZE = 1024

# short edge the decoder works at, capped by MAX_EDGE
TARGET_SIZE = 500
MAX_EDGE = 1333

# =========================
# Model contract
# =========================

EMBEDDING_SHAPE = (1, 256, 64, 64)
EMBEDDING_DTYPE = np.dtype("<f4")
EMBEDDING_NBYTES = int(np.prod(EMBEDDING_SHAPE)) * EMBEDDING_DTYPE.itemsize

LOW_RES_MASK_SHAPE = (1, 1, 256, 256)

CLICK_TYPE_NEGATIVE = 0
CLICK_TYPE_POSITIVE = 1
PADDING_POINT_LABEL = -1

# foreground iff raw value > MASK_THRESHOLD
MASK_THRESHOLD = 0.0

UPLOAD_MIME_TYPE = "image/png"
OUTPUT_MIME_TYPE = "image/png"

# =========================
# Cutout colors (RGBA)
# =========================

CUTOUT_COLORS = {
    "subject": (0, 0, 0, 255),
    "background": (255, 255, 255, 255),
}

CUTOUT_COLORS_NP = {k: np.array(v, dtype=np.uint8) for k, v in CUTOUT_COLORS.items()}

OUTLINE_COLOR = (1, 220, 5)
