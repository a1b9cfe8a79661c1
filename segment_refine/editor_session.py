import logging
from functools import partial
from pathlib import Path

from cutout_utils.image_io import (
    EmbeddingError,
    build_upload_request,
    decode_bitmap,
    decode_embedding,
    to_rgba,
)
from cutout_utils.mask_utils import mask_to_array, trace_mask, outlines_to_svg_paths
from .state import EditorState, SessionState
from .scale_ops import resolve_scale, upload_size, display_scale
from .prompt_ops import build_prompt
from .cutout_ops import render_cutout

logger = logging.getLogger(__name__)


class SessionStateError(RuntimeError):
    pass


def decode_now(blob, mime_type, on_done):
    on_done(decode_bitmap(blob, mime_type))


class EditorSession:
    """
    Click-refined cutout editor.

    Collaborators are fire-and-forget and report back through callbacks:

    - decoder(blob, mime_type, on_done) -> on_done(bitmap)
    - embedder(request, on_done)        -> on_done(base64 float32 payload)
    - channel.post(feeds), channel.subscribe(listener) -> handle,
      channel.unsubscribe(handle); the listener receives
      {"mask": ..., "output": ...} dicts.

    Use as a context manager so the channel listener is always released.
    """

    def __init__(self, *, channel, embedder, decoder=decode_now):
        self.S = EditorState()
        self.channel = channel
        self.embedder = embedder
        self.decoder = decoder

        self._generation = 0
        self._pending = 0
        self._subscription = None

    # ======================================================
    # Lifecycle
    # ======================================================
    def open(self):
        if self._subscription is None:
            self._subscription = self.channel.subscribe(self.on_inference_response)
            logger.debug("Subscribed to inference channel")
        return self

    def close(self):
        if self._subscription is not None:
            self.channel.unsubscribe(self._subscription)
            self._subscription = None
            logger.debug("Unsubscribed from inference channel")

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ======================================================
    # Read-only view
    # ======================================================
    @property
    def state(self):
        return self.S.status

    @property
    def bitmap(self):
        return self.S.bitmap

    @property
    def embedding(self):
        return self.S.embedding

    @property
    def mask(self):
        return self.S.mask

    @property
    def traced(self):
        return self.S.traced

    @property
    def svg_paths(self):
        if self.S.traced is None:
            return None
        return outlines_to_svg_paths(self.S.traced)

    @property
    def rendered_image(self):
        return self.S.rendered_image

    @property
    def clicks(self):
        return self.S.history.clicks

    @property
    def prior_mask_count(self):
        return len(self.S.history.prior_masks)

    @property
    def is_loading(self):
        return self.S.bitmap is None or self.S.embedding is None

    @property
    def is_undoable(self):
        return self.S.history.is_undoable

    # ======================================================
    # Image + embedding
    # ======================================================
    def load_image(self, blob, mime_type=None):
        self._generation += 1
        self._pending = 0
        self.S.reset()
        self._set_status(SessionState.IMAGE_LOADING)
        logger.info("Loading image (%s, %d bytes)", mime_type or "unknown type", len(blob))

        self.decoder(blob, mime_type, partial(self.on_bitmap_decoded, generation=self._generation))

    def on_bitmap_decoded(self, bitmap, generation=None):
        if self._is_stale(generation):
            logger.debug("Dropping bitmap from superseded load %s", generation)
            return
        if self.S.status != SessionState.IMAGE_LOADING:
            raise SessionStateError(f"No image load in progress (state={self.S.status.value})")

        bitmap = to_rgba(bitmap)
        H, W = bitmap.shape[:2]
        request = build_upload_request(bitmap, upload_size(W, H))
        bitmap.setflags(write=False)

        self.S.bitmap = bitmap
        self._set_status(SessionState.EMBEDDING_PENDING)
        logger.info("Bitmap ready (%dx%d), requesting embedding", W, H)

        self.embedder(request, partial(self.on_embedding_response, generation=self._generation))

    def on_embedding_response(self, payload, generation=None):
        if self._is_stale(generation):
            logger.debug("Dropping embedding from superseded load %s", generation)
            return
        if self.S.status != SessionState.EMBEDDING_PENDING:
            raise SessionStateError(f"No embedding expected (state={self.S.status.value})")

        try:
            embedding = decode_embedding(payload)
        except EmbeddingError as e:
            logger.error("Rejected embedding: %s", e)
            raise

        self.S.embedding = embedding
        self._set_status(SessionState.READY)
        logger.info("Embedding ready")

        # clicks made while the embedding was pending
        self._issue_prompt()

    # ======================================================
    # Clicks
    # ======================================================
    def add_click(self, x, y):
        if self.S.bitmap is None:
            raise SessionStateError("Load an image first")
        self.S.history.add(x, y)
        return self._issue_prompt()

    def undo(self):
        if not self.S.history.is_undoable:
            return None
        click = self.S.history.undo()
        self._issue_prompt()
        return click

    def clear(self):
        self.S.history.clear()
        self._issue_prompt()

    def _issue_prompt(self):
        if self.S.bitmap is None or self.S.embedding is None:
            return None

        if len(self.S.history) == 0:
            self.S.history.clear()
            self.S.clear_derived()
            self._pending = 0
            self._set_status(SessionState.READY)
            return None

        H, W = self.S.bitmap.shape[:2]
        prompt = build_prompt(
            self.S.history,
            self.S.embedding,
            resolve_scale(W, H),
            self.S.history.prior_masks.last(),
        )
        self.channel.post(prompt.to_feeds())
        self._pending += 1
        self._set_status(SessionState.PROMPTING)
        return prompt

    # ======================================================
    # Inference responses
    # ======================================================
    def on_inference_response(self, message):
        """Apply a decoder response; the latest one to arrive wins."""
        if self.S.embedding is None or len(self.S.history) == 0:
            logger.debug("Dropping inference response, no active prompt")
            return False
        if self._pending == 0:
            logger.debug("Dropping inference response, nothing outstanding")
            return False

        low_res = message.get("mask")
        output = message.get("output")
        if output is None:
            output = low_res
        if output is None:
            raise ValueError("Inference response carries no mask")

        self.S.mask = mask_to_array(output)
        self.S.history.prior_masks.append(low_res if low_res is not None else output)

        self._pending = max(0, self._pending - 1)
        self._set_status(SessionState.PROMPTING if self._pending else SessionState.READY)

        self._recompose()
        return True

    def _recompose(self):
        self.S.traced = None
        self.S.rendered_image = None
        if self.S.bitmap is None or self.S.mask is None:
            return

        H, W = self.S.bitmap.shape[:2]
        self.S.traced = trace_mask(self.S.mask, display_scale(W, H))
        self.S.rendered_image = render_cutout(self.S.bitmap, self.S.traced)

    # ======================================================
    # Export
    # ======================================================
    def save(self, out_path):
        if self.S.rendered_image is None:
            logger.info("Nothing to save")
            return None

        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(self.S.rendered_image.data)
        logger.info("Saved cutout -> %s", out_path)
        return out_path

    # ======================================================
    def _is_stale(self, generation):
        return generation is not None and generation != self._generation

    def _set_status(self, status):
        if status != self.S.status:
            logger.debug("Session %s -> %s", self.S.status.value, status.value)
        self.S.status = status
