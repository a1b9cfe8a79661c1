# segment_refine/state.py
from enum import Enum
from typing import List, NamedTuple, Optional
import numpy as np


class Click(NamedTuple):
    x: float
    y: float


class SessionState(Enum):
    NO_IMAGE = "no_image"
    IMAGE_LOADING = "image_loading"
    EMBEDDING_PENDING = "embedding_pending"
    READY = "ready"
    PROMPTING = "prompting"


class PriorMaskCache:
    """Masks returned by applied inference responses, oldest first."""

    def __init__(self):
        self._masks: List[np.ndarray] = []

    def __len__(self):
        return len(self._masks)

    def append(self, mask):
        self._masks.append(mask)

    def pop(self):
        if not self._masks:
            return None
        return self._masks.pop()

    def last(self) -> Optional[np.ndarray]:
        return self._masks[-1] if self._masks else None

    def clear(self):
        self._masks.clear()


class ClickHistory:
    def __init__(self, prior_masks: Optional[PriorMaskCache] = None):
        self._clicks: List[Click] = []
        self.prior_masks = prior_masks if prior_masks is not None else PriorMaskCache()

    def __len__(self):
        return len(self._clicks)

    @property
    def clicks(self):
        return tuple(self._clicks)

    @property
    def is_undoable(self) -> bool:
        return len(self._clicks) > 0

    def add(self, x, y):
        self._clicks.append(Click(float(x), float(y)))

    def undo(self):
        if not self._clicks:
            return None
        click = self._clicks.pop()
        # lock-step with the mask that click produced, if it ever arrived
        self.prior_masks.pop()
        return click

    def clear(self):
        self._clicks.clear()
        self.prior_masks.clear()


class EditorState:
    def __init__(self):
        self.bitmap: Optional[np.ndarray] = None
        self.embedding: Optional[np.ndarray] = None

        self.history = ClickHistory()

        self.mask: Optional[np.ndarray] = None
        self.traced = None
        self.rendered_image = None

        self.status = SessionState.NO_IMAGE

    def clear_derived(self):
        self.mask = None
        self.traced = None
        self.rendered_image = None

    def reset(self):
        self.bitmap = None
        self.embedding = None
        self.history.clear()
        self.clear_derived()
