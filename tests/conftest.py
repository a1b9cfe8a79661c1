import base64
import io

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest
from PIL import Image

from cutout_utils.config import EMBEDDING_SHAPE, EMBEDDING_DTYPE


def encode_embedding(embedding):
    """Base64 text of little-endian float32 values, as the extractor sends it."""
    arr = np.asarray(embedding, dtype=EMBEDDING_DTYPE)
    assert arr.shape == EMBEDDING_SHAPE
    return base64.b64encode(arr.tobytes()).decode("ascii")


class FakeChannel:
    def __init__(self):
        self.posts = []
        self.listeners = {}
        self._next = 0

    def post(self, feeds):
        self.posts.append(feeds)

    def subscribe(self, listener):
        self._next += 1
        self.listeners[self._next] = listener
        return self._next

    def unsubscribe(self, handle):
        del self.listeners[handle]

    def deliver(self, message):
        return [listener(message) for listener in list(self.listeners.values())]


class FakeEmbedder:
    """Holds requests until the test answers them."""

    def __init__(self):
        self.requests = []
        self.callbacks = []

    def __call__(self, request, on_done):
        self.requests.append(request)
        self.callbacks.append(on_done)

    def reply(self, payload, index=-1):
        self.callbacks[index](payload)


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def embedding_payload():
    rng = np.random.default_rng(7)
    return encode_embedding(rng.normal(size=EMBEDDING_SHAPE).astype(np.float32))


@pytest.fixture
def rgb_bitmap():
    rng = np.random.default_rng(3)
    return rng.integers(0, 256, size=(32, 64, 3), dtype=np.uint8)


@pytest.fixture
def png_blob(rgb_bitmap):
    buf = io.BytesIO()
    Image.fromarray(rgb_bitmap).save(buf, format="PNG")
    return buf.getvalue()
