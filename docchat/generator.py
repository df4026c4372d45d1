"""
Generation Session Module

Owns the conversation history and the inference backend handle, builds
context-augmented prompts and streams replies. A backend whose compute
context is lost mid-request is rebuilt once and the request re-issued.
"""
import asyncio
from contextlib import aclosing
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .backends import BackendFactory, InferenceBackend, InitProgressCallback
from .data_models import ASSISTANT, SYSTEM, USER, ChatTurn, GenerationOptions, InitProgress
from .errors import (
    BackendInitError,
    BackendLost,
    DocChatError,
    GenerationFailed,
    Interrupted,
    SessionBusy,
)
from .logger import get_logger

logger = get_logger(__name__)

PartialCallback = Callable[[str], None]

CONTEXT_TEMPLATE = (
    "Here is some relevant context from the provided documents:\n"
    "{context}\n"
    "\n"
    "Based on this context, please answer the following question:\n"
    "{question}"
)


class BackendState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    LOST = "lost"


def compose_user_content(user_message: str, context: str = "") -> str:
    """Wrap a question in the retrieved-context template when context is given."""
    if not context:
        return user_message
    return CONTEXT_TEMPLATE.format(context=context, question=user_message).strip()


class GenerationSession:
    """
    Streaming chat session over a lazily constructed inference backend.

    Only one ``send`` may be in flight at a time. Backend construction is
    shared: callers arriving while it is in progress await the same task.
    """

    def __init__(
        self,
        backend_factory: BackendFactory,
        model_id: str,
        on_progress: Optional[InitProgressCallback] = None,
    ):
        """
        Initialize the session. No backend is constructed until needed.

        Args:
            backend_factory: Awaitable factory ``(model_id, on_progress) -> backend``
            model_id: Model identifier passed to the factory
            on_progress: Default callback for construction progress
        """
        self.model_id = model_id
        self._factory = backend_factory
        self._on_progress = on_progress

        self._history: List[ChatTurn] = []
        self._backend: Optional[InferenceBackend] = None
        self._init_task: Optional[asyncio.Future] = None
        self._state = BackendState.UNINITIALIZED

        self._generating = False
        self._interrupted = False

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._backend is not None

    @property
    def is_generating(self) -> bool:
        return self._generating

    @property
    def history(self) -> Tuple[ChatTurn, ...]:
        return tuple(self._history)

    def reset(self) -> None:
        """Start a new conversation."""
        if self._generating:
            raise SessionBusy("Cannot reset history while a reply is being generated")
        self._history.clear()

    # ------------------------------------------------------------------ #
    # Backend lifecycle
    # ------------------------------------------------------------------ #
    async def ensure_ready(self, on_progress: Optional[InitProgressCallback] = None) -> None:
        """
        Construct the backend if there is none.

        Args:
            on_progress: Construction progress callback; falls back to the
                session default. Ignored if construction is already running.

        Raises:
            BackendInitError: construction failed (a later call retries)
        """
        if self._backend is not None:
            return
        if self._init_task is None:
            self._state = BackendState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._construct(on_progress or self._on_progress))
        await asyncio.shield(self._init_task)

    async def _construct(self, on_progress: Optional[InitProgressCallback]) -> None:
        logger.info("Initializing inference backend: %s", self.model_id)
        try:
            backend = await self._factory(self.model_id, on_progress)
        except Exception as exc:
            self._init_task = None
            self._state = BackendState.UNINITIALIZED
            logger.error("Failed to initialize inference backend %s: %s", self.model_id, exc)
            raise BackendInitError(f"Failed to load model {self.model_id}: {exc}") from exc

        self._backend = backend
        self._init_task = None
        self._state = BackendState.READY
        logger.info("Inference backend ready")

    async def _recover(self, on_progress: Optional[InitProgressCallback]) -> None:
        logger.warning("Inference backend lost, rebuilding it")
        self._state = BackendState.LOST
        stale, self._backend = self._backend, None
        self._init_task = None
        if stale is not None:
            try:
                stale.dispose()
            except Exception as exc:
                logger.warning("Could not release lost backend: %s", exc)

        on_progress = on_progress or self._on_progress
        if on_progress is not None:
            on_progress(InitProgress(text="Reloading model...", progress=0.0))
        await self.ensure_ready(on_progress)

    # ------------------------------------------------------------------ #
    # Chat
    # ------------------------------------------------------------------ #
    async def send(
        self,
        user_message: str,
        context: str = "",
        options: Optional[GenerationOptions] = None,
        on_partial: Optional[PartialCallback] = None,
        on_progress: Optional[InitProgressCallback] = None,
    ) -> str:
        """
        Send a user message and stream the reply.

        Args:
            user_message: The user's question
            context: Retrieved context to prepend, or "" for none
            options: System prompt and temperature
            on_partial: Called with the accumulated reply after every delta
            on_progress: Backend construction progress callback

        Returns:
            The full reply, also appended to the history

        Raises:
            BackendInitError: the backend could not be constructed
            Interrupted: ``interrupt`` was called; carries the partial reply
            GenerationFailed: any other failure, including a second backend loss
            SessionBusy: another ``send`` is in flight
        """
        if self._generating:
            raise SessionBusy("A reply is already being generated")
        options = options or GenerationOptions()

        self._generating = True
        self._interrupted = False
        try:
            await self.ensure_ready(on_progress)

            self._history.append(ChatTurn(USER, compose_user_content(user_message, context)))
            messages = self._build_messages(options)

            try:
                reply = await self._stream_reply(messages, options.temperature, on_partial)
            except BackendLost:
                await self._recover(on_progress)
                try:
                    reply = await self._stream_reply(messages, options.temperature, on_partial)
                except BackendLost as exc:
                    raise GenerationFailed(f"Model backend lost again after reload: {exc}") from exc

            self._history.append(ChatTurn(ASSISTANT, reply))
            return reply
        finally:
            self._generating = False

    async def interrupt(self) -> None:
        """Stop the in-flight reply. No-op when nothing is being generated."""
        if self._backend is None or not self._generating or self._interrupted:
            return
        self._interrupted = True
        await self._backend.interrupt()

    def _build_messages(self, options: GenerationOptions) -> List[dict]:
        return [{"role": SYSTEM, "content": options.system_prompt}] + [
            turn.to_message() for turn in self._history
        ]

    async def _stream_reply(
        self,
        messages: List[dict],
        temperature: float,
        on_partial: Optional[PartialCallback],
    ) -> str:
        reply = ""
        try:
            async with aclosing(self._backend.stream_chat(messages, temperature)) as stream:
                async for delta in stream:
                    if self._interrupted:
                        break
                    reply += delta
                    if on_partial is not None:
                        on_partial(reply)
        except BackendLost:
            if self._interrupted:
                raise Interrupted(reply)
            self._state = BackendState.LOST
            raise
        except DocChatError:
            raise
        except Exception as exc:
            if self._interrupted:
                raise Interrupted(reply) from exc
            logger.exception("Generation failed")
            raise GenerationFailed(str(exc)) from exc

        if self._interrupted:
            logger.info("Generation stopped by user after %d chars", len(reply))
            raise Interrupted(reply)
        return reply
