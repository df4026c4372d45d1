"""
Shared fakes for DocChat tests.

The fakes stand in for the sentence-transformers model, uploaded documents
and the inference backend so the tests run without model downloads.
"""

import asyncio
import string
from typing import List, Optional, Sequence

import numpy as np
import pytest

from docchat.data_models import InitProgress
from docchat.document_loader import PDF_TYPE
from docchat.generator import GenerationSession
from docchat.retriever import RetrievalEngine


def letter_vector(text: str) -> np.ndarray:
    """Bag-of-letters embedding: one dimension per ASCII letter."""
    lowered = text.lower()
    return np.array([lowered.count(c) for c in string.ascii_lowercase], dtype=np.float32)


class FakeEmbedder:
    """Deterministic embedder with scriptable load and embed failures."""

    def __init__(self, load_failures: int = 0, fail_on: Optional[str] = None):
        self.load_failures = load_failures
        self.fail_on = fail_on
        self.load_calls = 0
        self.embedded: List[str] = []
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        self.load_calls += 1
        await asyncio.sleep(0)
        if self.load_failures > 0:
            self.load_failures -= 1
            raise RuntimeError("model download failed")
        self._loaded = True

    async def embed(self, text: str) -> np.ndarray:
        await asyncio.sleep(0)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError(f"cannot embed {self.fail_on!r}")
        self.embedded.append(text)
        return letter_vector(text)


class FakeDocument:
    """In-memory document with a fixed text."""

    def __init__(self, name: str, text: str, type: str = PDF_TYPE, fail: bool = False):
        self.name = name
        self.type = type
        self.text = text
        self.fail = fail

    async def extract_text(self) -> str:
        if self.fail:
            raise RuntimeError("corrupt PDF")
        return self.text


class FakeBackend:
    """
    Scripted inference backend.

    Yields ``deltas`` in order, then raises ``error`` if given. With
    ``hold_after`` set, the stream pauses before that delta until
    ``interrupt`` is called.
    """

    def __init__(
        self,
        deltas: Sequence[str] = ("Hello", " world"),
        error: Optional[BaseException] = None,
        hold_after: Optional[int] = None,
    ):
        self.deltas = list(deltas)
        self.error = error
        self.hold_after = hold_after
        self.calls: List[List[dict]] = []
        self.temperatures: List[float] = []
        self.interrupt_calls = 0
        self.disposed = False
        self.holding = asyncio.Event()
        self._released = asyncio.Event()

    async def stream_chat(self, messages, temperature):
        self.calls.append([dict(m) for m in messages])
        self.temperatures.append(temperature)
        for i, delta in enumerate(self.deltas):
            if self.hold_after is not None and i == self.hold_after:
                self.holding.set()
                await self._released.wait()
            yield delta
        if self.error is not None:
            raise self.error

    async def interrupt(self) -> None:
        self.interrupt_calls += 1
        self._released.set()

    def dispose(self) -> None:
        self.disposed = True


class FakeBackendFactory:
    """Hands out backends in order; the last one is reused once the list runs out."""

    def __init__(self, *backends: FakeBackend, failures: int = 0):
        self.backends = list(backends) or [FakeBackend()]
        self.failures = failures
        self.calls = 0
        self.model_ids: List[str] = []

    async def __call__(self, model_id: str, on_progress=None):
        self.calls += 1
        self.model_ids.append(model_id)
        if on_progress is not None:
            on_progress(InitProgress(text="Loading fake model...", progress=0.5))
        await asyncio.sleep(0)
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("out of memory")
        if len(self.backends) > 1:
            return self.backends.pop(0)
        return self.backends[0]


class RecordingView:
    """ChatView that records every hook call."""

    def __init__(self):
        self.statuses = []
        self.messages = []
        self.partials = []
        self.loading = []

    def on_status(self, label, style_hint):
        self.statuses.append((label, style_hint))

    def on_message(self, text):
        self.messages.append(text)

    def on_partial(self, text):
        self.partials.append(text)

    def set_loading(self, loading):
        self.loading.append(loading)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def engine(embedder):
    return RetrievalEngine(embedder, chunk_size=500, overlap=100)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def factory(backend):
    return FakeBackendFactory(backend)


@pytest.fixture
def session(factory):
    return GenerationSession(factory, "fake-model")
