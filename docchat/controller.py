"""
Session Controller Module

Wires user actions (model preload, document upload, message send, stop) to
the retrieval engine and the generation session, and reports progress and
partial output to a presentation layer through ``ChatView`` hooks.
"""
from typing import Iterable, List, Optional

from .data_models import GenerationOptions, IngestResult, InitProgress
from .document_loader import Document
from .errors import BackendInitError, DocChatError, Interrupted
from .generator import GenerationSession
from .logger import get_logger
from .retriever import RetrievalEngine

logger = get_logger(__name__)

# Style hints passed with status labels
STYLE_READY = "ready"
STYLE_LOADING = "loading"
STYLE_BUSY = "busy"
STYLE_GENERATING = "generating"
STYLE_STOPPED = "stopped"
STYLE_ERROR = "error"


class ChatView:
    """
    Presentation hooks consumed by the controller.

    Every hook is a no-op here; presentation layers override the ones they
    render.
    """

    def on_status(self, label: str, style_hint: str) -> None:
        """Show a short status label (model state, ingestion phase)."""

    def on_message(self, text: str) -> None:
        """Post a system message to the conversation."""

    def on_partial(self, text: str) -> None:
        """Replace the reply being streamed with its latest text."""

    def set_loading(self, loading: bool) -> None:
        """Toggle the generating state (input disabled, stop enabled)."""


class SessionController:
    """Orchestrates one chat session over a retrieval engine."""

    def __init__(
        self,
        engine: RetrievalEngine,
        session: GenerationSession,
        view: Optional[ChatView] = None,
        options: Optional[GenerationOptions] = None,
        top_k: int = 3,
    ):
        """
        Initialize the controller.

        Args:
            engine: Retrieval engine holding the uploaded documents
            session: Generation session for the conversation
            view: Presentation hooks
            options: Initial generation options
            top_k: Number of search results added to the prompt context
        """
        self.engine = engine
        self.session = session
        self.view = view or ChatView()
        self.options = options or GenerationOptions()
        self.top_k = top_k

    def update_options(self, system_prompt: Optional[str] = None, temperature: Optional[float] = None) -> GenerationOptions:
        """Replace the generation options used by later messages."""
        self.options = GenerationOptions(
            system_prompt=system_prompt if system_prompt is not None else self.options.system_prompt,
            temperature=temperature if temperature is not None else self.options.temperature,
        )
        return self.options

    def _relay_init_progress(self, progress: InitProgress) -> None:
        self.view.on_status(progress.text, STYLE_LOADING)

    async def preload(self) -> bool:
        """
        Load the embedding model and the language model ahead of the first message.

        Returns:
            True if the language model is ready
        """
        self.view.on_message("System: Pre-loading AI Model...")
        self.engine.warm_up()
        try:
            await self.session.ensure_ready(self._relay_init_progress)
        except BackendInitError as exc:
            self.view.on_message(f"System: Model load failed - {exc}")
            self.view.on_status("Error", STYLE_ERROR)
            return False

        self.view.on_status("Model Ready", STYLE_READY)
        self.view.on_message("System: AI Model is ready to chat!")
        return True

    async def ingest_files(self, files: Iterable[Document]) -> List[IngestResult]:
        """
        Ingest uploaded documents.

        Args:
            files: Uploaded documents; unsupported types are skipped

        Returns:
            Results for the documents that were ingested
        """
        files = list(files)
        self.view.on_message(f"System: Reading {len(files)} file(s)...")

        results = await self.engine.ingest(
            files,
            on_progress=lambda status: self.view.on_status(status, STYLE_BUSY),
        )

        if results:
            self.view.on_message(f"System: Successfully read {len(results)} documents.")
        else:
            self.view.on_message("System: No documents could be read.")
        self.view.on_status("Ready", STYLE_READY)
        return results

    async def build_context(self, query: str) -> str:
        """
        Build the prompt context for a query.

        The context lists every document in the knowledge base, followed by
        the best-matching chunks. Returns "" when no document is loaded.
        """
        if self.engine.chunk_count == 0:
            return ""

        self.view.on_status("Searching Knowledge Base...", STYLE_BUSY)
        context = ""

        sources = sorted(self.engine.list_sources())
        if sources:
            context += "Available Documents in Knowledge Base:\n- " + "\n- ".join(sources) + "\n\n"

        try:
            results = await self.engine.search(query, self.top_k)
        except DocChatError:
            logger.exception("Knowledge base search failed")
            return context

        if results:
            context += "Relevant Content:\n" + "\n\n".join(
                f"[Source: {r.source}]\n{r.text}" for r in results
            )
        return context

    async def send_message(self, text: str) -> Optional[str]:
        """
        Answer a user message.

        Returns:
            The full reply, or None if the model could not be loaded or the
            reply failed or was stopped
        """
        if not self.session.is_ready:
            try:
                await self.session.ensure_ready(self._relay_init_progress)
            except BackendInitError as exc:
                self.view.on_message(f"System: Failed to load model - {exc}")
                return None

        context = await self.build_context(text)

        self.view.on_status("Generating Answer...", STYLE_GENERATING)
        self.view.set_loading(True)
        try:
            reply = await self.session.send(
                text,
                context,
                self.options,
                on_partial=self.view.on_partial,
                on_progress=self._relay_init_progress,
            )
        except Interrupted:
            self.view.on_status("Stopped", STYLE_STOPPED)
            return None
        except DocChatError as exc:
            logger.error("Reply failed: %s", exc)
            self.view.on_partial(f"**Error**: {exc}")
            self.view.on_status("Error", STYLE_ERROR)
            return None
        finally:
            self.view.set_loading(False)

        self.view.on_partial(reply)
        self.view.on_status("Ready", STYLE_READY)
        return reply

    async def stop(self) -> None:
        """Stop the reply being generated."""
        await self.session.interrupt()
        self.view.set_loading(False)
        self.view.on_status("Stopped", STYLE_STOPPED)

    def new_chat(self) -> None:
        """Clear the conversation history."""
        self.session.reset()
