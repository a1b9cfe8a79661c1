import logging
from dataclasses import dataclass
from typing import Optional, Tuple
import cv2
import numpy as np

from cutout_utils.config import (
    CLICK_TYPE_POSITIVE,
    CLICK_TYPE_NEGATIVE,
    PADDING_POINT_LABEL,
    LOW_RES_MASK_SHAPE,
)
from .scale_ops import ScaleParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelClick:
    x: float
    y: float
    width: Optional[float] = None
    height: Optional[float] = None
    click_type: int = CLICK_TYPE_POSITIVE

    def as_dict(self):
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "clickType": self.click_type,
        }


@dataclass(frozen=True)
class Prompt:
    clicks: Tuple[ModelClick, ...]
    embedding: np.ndarray
    model_scale: ScaleParameters
    prior_mask: Optional[np.ndarray] = None

    def to_feeds(self):
        """Feed dict for the ONNX point-prompt decoder."""
        n = len(self.clicks)
        coords = np.zeros((1, n + 1, 2), np.float32)
        labels = np.full((1, n + 1), PADDING_POINT_LABEL, np.float32)
        for i, c in enumerate(self.clicks):
            coords[0, i] = (c.x, c.y)
            labels[0, i] = c.click_type

        if self.prior_mask is None:
            mask_input = np.zeros(LOW_RES_MASK_SHAPE, np.float32)
            has_mask = np.array([0], np.float32)
        else:
            mask_input = as_low_res_mask(self.prior_mask)
            has_mask = np.array([1], np.float32)

        return {
            "image_embeddings": self.embedding,
            "point_coords": coords,
            "point_labels": labels,
            "orig_im_size": np.array(
                [self.model_scale.mask_height, self.model_scale.mask_width], np.float32
            ),
            "mask_input": mask_input,
            "has_mask_input": has_mask,
        }

    def as_message(self):
        return {
            "clicks": [c.as_dict() for c in self.clicks],
            "tensor": self.embedding,
            "modelScale": self.model_scale.as_dict(),
            "last_pred_mask": self.prior_mask,
        }


def as_low_res_mask(mask):
    m = np.asarray(mask, np.float32)
    if m.size != int(np.prod(LOW_RES_MASK_SHAPE)):
        # decoder only accepts its own 256x256 low-res logits
        h, w = LOW_RES_MASK_SHAPE[-2:]
        m = cv2.resize(np.squeeze(m), (w, h), interpolation=cv2.INTER_LINEAR)
    return m.reshape(LOW_RES_MASK_SHAPE)


def to_model_click(x, y, scale: ScaleParameters, click_type=CLICK_TYPE_POSITIVE):
    if click_type not in (CLICK_TYPE_POSITIVE, CLICK_TYPE_NEGATIVE):
        raise ValueError(f"Unknown click type {click_type}")
    return ModelClick(x * scale.onnx_scale, y * scale.onnx_scale, click_type=click_type)


def build_prompt(history, embedding, scale: ScaleParameters, prior_mask=None) -> Optional[Prompt]:
    """
    None when the history is empty: the caller clears mask and output
    instead of posting.
    """
    if len(history) == 0:
        return None

    clicks = tuple(to_model_click(c.x, c.y, scale) for c in history.clicks)
    logger.debug(
        "Prompt with %d click(s), prior mask %s", len(clicks),
        "set" if prior_mask is not None else "absent"
    )
    return Prompt(clicks=clicks, embedding=embedding, model_scale=scale, prior_mask=prior_mask)
