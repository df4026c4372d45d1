"""
Chat Service - Wraps the DocChat core for the HTTP API.
"""

import asyncio
import weakref
from collections import deque
from typing import AsyncIterator, List, Optional

from docchat.backends import create_backend_factory
from docchat.controller import STYLE_LOADING, STYLE_READY, ChatView, SessionController
from docchat.data_models import GenerationOptions, IngestResult
from docchat.document_loader import Document
from docchat.embedder import EmbeddingGenerator
from docchat.errors import SessionBusy
from docchat.generator import GenerationSession
from docchat.logger import configure_logging, get_logger
from docchat.retriever import RetrievalEngine
from docchat.settings import RAGConfig

logger = get_logger(__name__)

_STREAM_END = None

RELOAD_NOTICE = "\n\n_Model reloaded, regenerating the answer..._\n\n"


class StreamingChatView(ChatView):
    """
    Chat view that keeps the latest status and system messages, and turns
    the controller's running reply into text deltas for an HTTP stream.
    """

    def __init__(self, max_messages: int = 50):
        self.label = "Idle"
        self.style = STYLE_READY
        self.loading = False
        self.messages = deque(maxlen=max_messages)
        self._queue: Optional[asyncio.Queue] = None
        self._sent = ""

    def on_status(self, label: str, style_hint: str) -> None:
        self.label = label
        self.style = style_hint
        if style_hint == STYLE_LOADING and self._queue is not None and self._sent:
            # The model is being rebuilt mid-reply; the retry starts from scratch
            self._queue.put_nowait(RELOAD_NOTICE)
            self._sent = ""

    def on_message(self, text: str) -> None:
        self.messages.append(text)

    def set_loading(self, loading: bool) -> None:
        self.loading = loading

    def on_partial(self, text: str) -> None:
        if self._queue is None:
            return
        if text.startswith(self._sent):
            delta = text[len(self._sent):]
        else:
            # The reply was replaced (error notice); send it on its own paragraph
            delta = "\n\n" + text
        self._sent = text
        if delta:
            self._queue.put_nowait(delta)

    def open_stream(self) -> asyncio.Queue:
        self._queue = asyncio.Queue()
        self._sent = ""
        return self._queue

    def close_stream(self) -> None:
        if self._queue is not None:
            self._queue.put_nowait(_STREAM_END)
            self._queue = None


class ReplyStream:
    """
    Async iterator over the deltas of one reply.

    The service counts as busy while the stream is alive and open. Closing
    it, exhausting it or dropping the last reference releases the service,
    even if it was never iterated.
    """

    def __init__(self, deltas: AsyncIterator[str]):
        self._deltas = deltas
        self.closed = False

    def __aiter__(self) -> "ReplyStream":
        return self

    async def __anext__(self) -> str:
        if self.closed:
            raise StopAsyncIteration
        try:
            return await self._deltas.__anext__()
        except BaseException:
            self.closed = True
            raise

    async def aclose(self) -> None:
        self.closed = True
        await self._deltas.aclose()


class ChatService:
    """
    One chat session over one knowledge base, shared by all HTTP clients.
    """

    def __init__(
        self,
        config: RAGConfig,
        engine: Optional[RetrievalEngine] = None,
        session: Optional[GenerationSession] = None,
    ):
        """
        Initialize the chat service.

        Args:
            config: DocChat configuration
            engine: Retrieval engine (built from config if omitted)
            session: Generation session (built from config if omitted)
        """
        configure_logging(config.env)

        self.config = config
        self.view = StreamingChatView()
        self.engine = engine or RetrievalEngine(
            EmbeddingGenerator(config.embedding_model, device=config.embedding_device),
            chunk_size=config.chunk_size,
            overlap=config.chunk_overlap,
            supported_type=config.supported_type,
        )
        self.session = session or GenerationSession(
            create_backend_factory(config),
            config.llm_model,
        )
        self.controller = SessionController(
            self.engine,
            self.session,
            view=self.view,
            options=GenerationOptions(system_prompt=config.system_prompt, temperature=config.temperature),
            top_k=config.top_k,
        )
        self._active_stream: Optional[weakref.ref] = None

    @property
    def is_busy(self) -> bool:
        stream = self._active_stream() if self._active_stream is not None else None
        return (stream is not None and not stream.closed) or self.session.is_generating

    async def ingest(self, documents: List[Document]) -> List[IngestResult]:
        return await self.controller.ingest_files(documents)

    def stream_reply(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> ReplyStream:
        """
        Answer a message, yielding the reply as text deltas.

        The service is marked busy as soon as this returns, before the
        stream is consumed.

        Raises:
            SessionBusy: another reply is being streamed
            InvalidArgument: temperature outside [0, 2]
        """
        if self.is_busy:
            raise SessionBusy("A reply is already being generated")
        self.controller.update_options(system_prompt=system_prompt, temperature=temperature)
        stream = ReplyStream(self._stream(message))
        self._active_stream = weakref.ref(stream)
        return stream

    async def _stream(self, message: str) -> AsyncIterator[str]:
        queue = self.view.open_stream()
        task = asyncio.ensure_future(self._answer(message))
        try:
            while True:
                delta = await queue.get()
                if delta is _STREAM_END:
                    break
                yield delta
        finally:
            if not task.done():
                logger.info("Reply stream closed early, stopping generation")
                await self.controller.stop()
            await task

    async def _answer(self, message: str) -> None:
        try:
            await self.controller.send_message(message)
        finally:
            self.view.close_stream()

    async def stop(self) -> None:
        await self.controller.stop()

    def reset(self) -> None:
        self.controller.new_chat()


_service_instance: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get or create the global chat service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = ChatService(RAGConfig.from_env())
    return _service_instance
