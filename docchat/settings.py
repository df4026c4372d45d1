"""DocChat Configuration."""
import os
from dataclasses import dataclass, field, fields
from typing import Optional

from dotenv import load_dotenv

from .errors import InvalidArgument

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful academic research assistant. Use the provided context "
    "to answer questions accurately. Cite your sources if possible."
)

ENV_PREFIX = "DOCCHAT_"


@dataclass
class RAGConfig:
    """
    Global configuration for DocChat.

    Attributes:
        env: Environment mode controlling log verbosity ('dev' or 'prod'),
            applied by the chat service through ``configure_logging``
        chunk_size: Number of characters per chunk
        chunk_overlap: Number of overlapping characters between chunks
        supported_type: Declared document type accepted for ingestion
        embedding_model: Name of the sentence-transformers model
        embedding_device: Device for embeddings ('cpu', 'cuda' or None to auto-detect)
        top_k: Number of chunks added to the prompt context
        llm_provider: Inference backend ('llama_cpp' or 'gemini')
        llm_model: Model path (llama_cpp) or model name (gemini)
        n_ctx: Context window for the on-device model
        n_threads: CPU threads for the on-device model
        max_tokens: Maximum tokens in a response
        temperature: Default sampling temperature (0.0-2.0)
        system_prompt: Default system prompt for the LLM
        gemini_api_key: API key for the gemini provider
        preload: Load the models when the HTTP service starts
    """

    env: str = "dev"

    # Chunking parameters
    chunk_size: int = 500
    chunk_overlap: int = 100
    supported_type: str = "application/pdf"

    # Embedding parameters
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_device: Optional[str] = None

    # Retrieval parameters
    top_k: int = 3

    # Generation parameters
    llm_provider: str = "llama_cpp"
    llm_model: str = "models/Llama-3.2-1B-Instruct-Q4_K_M.gguf"
    n_ctx: int = 4096
    n_threads: int = 4
    max_tokens: int = 1024
    temperature: float = 0.7

    system_prompt: str = field(default=DEFAULT_SYSTEM_PROMPT)

    gemini_api_key: Optional[str] = field(default=None, repr=False)

    # HTTP service
    preload: bool = True

    PROVIDERS = ("llama_cpp", "gemini")

    def __post_init__(self):
        if self.env not in ("dev", "prod"):
            raise InvalidArgument(f"env must be 'dev' or 'prod', got {self.env!r}")
        if self.chunk_size <= 0:
            raise InvalidArgument(f"chunk_size must be positive, got {self.chunk_size}")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise InvalidArgument(
                f"chunk_overlap must be in [0, {self.chunk_size}), got {self.chunk_overlap}"
            )
        if self.top_k < 1:
            raise InvalidArgument(f"top_k must be at least 1, got {self.top_k}")
        if not 0.0 <= self.temperature <= 2.0:
            raise InvalidArgument(f"temperature must be in [0, 2], got {self.temperature}")
        if self.llm_provider not in self.PROVIDERS:
            raise InvalidArgument(
                f"Unknown llm_provider: {self.llm_provider}. Choose from {self.PROVIDERS}"
            )

    def to_dict(self) -> dict:
        """Convert config to dictionary (the API key is left out)."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "gemini_api_key"}

    @classmethod
    def from_dict(cls, data: dict) -> 'RAGConfig':
        """Create config from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_env(cls) -> 'RAGConfig':
        """
        Create config from ``DOCCHAT_*`` environment variables.

        A ``.env`` file in the working directory is loaded first. Unset
        variables keep their defaults; ``GEMINI_API_KEY`` is accepted as a
        fallback for ``DOCCHAT_GEMINI_API_KEY``.
        """
        load_dotenv()

        data = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            if f.type in (bool, "bool"):
                data[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
            elif f.type in (int, "int"):
                data[f.name] = int(raw)
            elif f.type in (float, "float"):
                data[f.name] = float(raw)
            else:
                data[f.name] = raw

        if "gemini_api_key" not in data and os.getenv("GEMINI_API_KEY"):
            data["gemini_api_key"] = os.getenv("GEMINI_API_KEY")

        return cls.from_dict(data)
