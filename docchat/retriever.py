"""
Retrieval Engine Module

Handles:
- Ingestion: extraction -> chunking -> embedding -> storage
- Query embedding and similarity search
- Lazy, retryable embedding model initialisation
"""
import asyncio
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .chunker import TextChunker
from .data_models import ChunkRecord, IngestResult, SearchResult
from .document_loader import PDF_TYPE, Document
from .embedder import Embedder
from .errors import DimensionMismatch, DocChatError, EmbeddingFailed, ExtractionFailed
from .logger import get_logger
from .vector_store import VectorStore

logger = get_logger(__name__)

ProgressCallback = Callable[[str], None]


class RetrievalEngine:
    """
    Owns the vector store and the embedding capability.

    Files are ingested one at a time, and concurrent ``ingest`` calls are
    serialised, so records always land in the store in ingestion order.
    """

    def __init__(
        self,
        embedder: Embedder,
        chunk_size: int = 500,
        overlap: int = 100,
        supported_type: str = PDF_TYPE,
    ):
        """
        Initialize the retrieval engine.

        Args:
            embedder: Embedding capability for chunks and queries
            chunk_size: Characters per chunk
            overlap: Characters shared by consecutive chunks
            supported_type: Declared document type accepted by ``ingest``
        """
        self.embedder = embedder
        self.chunker = TextChunker(chunk_size=chunk_size, overlap=overlap)
        self.supported_type = supported_type
        self.store = VectorStore()

        self._embedder_load: Optional[asyncio.Future] = None
        self._ingest_lock = asyncio.Lock()

    @property
    def chunk_count(self) -> int:
        return self.store.count

    # ------------------------------------------------------------------ #
    # Embedding model
    # ------------------------------------------------------------------ #
    async def load_embedder(self) -> bool:
        """
        Make sure the embedding model is loaded.

        Concurrent callers share one load. A failed load is logged and
        forgotten so the next call tries again.

        Returns:
            True if the model is ready
        """
        if self.embedder.is_loaded:
            return True

        if self._embedder_load is None:
            self._embedder_load = asyncio.ensure_future(self.embedder.load())
        pending = self._embedder_load

        try:
            await asyncio.shield(pending)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Failed to load embedding model")
            return False
        finally:
            if self._embedder_load is pending and pending.done():
                self._embedder_load = None
        return True

    def warm_up(self) -> asyncio.Task:
        """Start loading the embedding model in the background."""
        return asyncio.ensure_future(self.load_embedder())

    async def _embed(self, text: str):
        if not await self.load_embedder():
            raise EmbeddingFailed("Embedding model is not available")
        try:
            return await self.embedder.embed(text)
        except EmbeddingFailed:
            raise
        except Exception as exc:
            raise EmbeddingFailed(f"Embedding failed: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Ingestion
    # ------------------------------------------------------------------ #
    async def ingest(
        self,
        files: Iterable[Document],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[IngestResult]:
        """
        Extract, chunk, embed and store a batch of documents.

        Args:
            files: Documents to ingest
            on_progress: Optional callback receiving human-readable phase strings

        Returns:
            One IngestResult per successfully ingested document. Unsupported
            and failed documents are left out.
        """
        results = []
        async with self._ingest_lock:
            for document in files:
                if document.type != self.supported_type:
                    logger.info("Skipping unsupported document %s (type=%s)", document.name, document.type)
                    continue
                try:
                    results.append(await self._ingest_document(document, on_progress))
                except DocChatError:
                    logger.exception("Failed to ingest document: %s", document.name)
        return results

    async def _ingest_document(
        self,
        document: Document,
        on_progress: Optional[ProgressCallback],
    ) -> IngestResult:
        _report(on_progress, f"Reading {document.name}...")
        try:
            text = await document.extract_text()
        except Exception as exc:
            raise ExtractionFailed(f"Could not extract text from {document.name}: {exc}") from exc
        if not isinstance(text, str):
            raise ExtractionFailed(f"Extractor for {document.name} returned {type(text).__name__}, expected str")

        _report(on_progress, f"Chunking {document.name}...")
        chunks = self.chunker.chunk(text)
        stats = self.chunker.get_statistics(chunks)
        logger.debug(
            "Chunked %s: %d chunk(s), avg %.0f chars",
            document.name, stats['total_chunks'], stats['avg_length'],
        )

        _report(on_progress, f"Embedding {len(chunks)} segments...")
        records = []
        for chunk in chunks:
            vector = await self._embed(chunk)
            records.append(ChunkRecord(
                id=uuid.uuid4().hex,
                text=chunk,
                embedding=vector,
                source=document.name,
            ))

        expected = self.store.dimension
        for record in records:
            if expected is None:
                expected = record.dimension
            elif record.dimension != expected:
                raise DimensionMismatch(expected, record.dimension)

        # Commit only once every chunk of the document is embedded and checked
        for record in records:
            self.store.append(record)

        logger.info("Ingested %s: %d chunk(s), %d record(s) in store", document.name, len(chunks), self.store.count)
        return IngestResult(
            name=document.name,
            text_length=len(text),
            chunk_count=len(chunks),
            vector_count=self.store.count,
        )

    # ------------------------------------------------------------------ #
    # Search
    # ------------------------------------------------------------------ #
    async def search(self, query: str, k: int = 3) -> List[SearchResult]:
        """
        Embed a query and return the k most similar chunks.

        Args:
            query: Query text
            k: Number of results to return

        Returns:
            SearchResults ordered by descending score
        """
        if self.store.count == 0 or k <= 0:
            return []

        logger.debug("Searching for: %r", query)
        query_vector = await self._embed(query)
        ranked = self.store.rank(query_vector, k)
        return [
            SearchResult(text=record.text, source=record.source, score=score, rank=rank)
            for rank, (record, score) in enumerate(ranked, start=1)
        ]

    def list_sources(self) -> Set[str]:
        """Unique source names in the store."""
        return self.store.unique_sources()

    def get_statistics(self) -> Dict[str, Any]:
        """Store statistics: chunk count, sources and embedding dimension."""
        return self.store.get_statistics()

    def clear(self) -> int:
        """Drop every stored chunk. Returns the number removed."""
        removed = self.store.clear()
        logger.info("Cleared %d record(s) from the vector store", removed)
        return removed


def _report(callback: Optional[ProgressCallback], message: str) -> None:
    if callback is not None:
        callback(message)
