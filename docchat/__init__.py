"""Core modules for DocChat: retrieval over uploaded PDFs and streaming chat."""
from .backends import GeminiBackend, InferenceBackend, LlamaCppBackend, create_backend_factory
from .chunker import TextChunker, chunk_text
from .controller import ChatView, SessionController
from .data_models import ChatTurn, ChunkRecord, GenerationOptions, IngestResult, InitProgress, SearchResult
from .document_loader import Document, PdfDocument, UploadedDocument
from .embedder import EmbeddingGenerator
from .errors import (
    BackendInitError,
    BackendLost,
    DimensionMismatch,
    DocChatError,
    EmbeddingFailed,
    ExtractionFailed,
    GenerationFailed,
    Interrupted,
    InvalidArgument,
    SessionBusy,
)
from .generator import BackendState, GenerationSession
from .retriever import RetrievalEngine
from .settings import RAGConfig
from .vector_store import VectorStore
