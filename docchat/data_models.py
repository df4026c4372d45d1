"""
Core data models for DocChat.
"""
from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np

from .errors import InvalidArgument
from .settings import DEFAULT_SYSTEM_PROMPT

USER = "user"
ASSISTANT = "assistant"
SYSTEM = "system"


@dataclass(frozen=True, eq=False)
class ChunkRecord:
    """A stored chunk with its embedding. The embedding array is read-only."""
    id: str
    text: str
    embedding: np.ndarray
    source: str

    def __post_init__(self):
        embedding = np.array(self.embedding, dtype=np.float32)
        if embedding.ndim != 1:
            raise InvalidArgument(f"Embedding must be a 1-D vector, got shape {embedding.shape}")
        embedding.setflags(write=False)
        object.__setattr__(self, "embedding", embedding)

    @property
    def dimension(self) -> int:
        """Return the embedding dimensionality."""
        return int(self.embedding.shape[0])


@dataclass(frozen=True)
class SearchResult:
    """Represents a single search result."""
    text: str
    source: str
    score: float
    rank: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'text': self.text,
            'source': self.source,
            'score': self.score,
            'rank': self.rank,
        }


@dataclass(frozen=True)
class IngestResult:
    """Summary of one successfully ingested document."""
    name: str
    text_length: int
    chunk_count: int
    vector_count: int


@dataclass(frozen=True)
class ChatTurn:
    """One turn of the conversation history."""
    role: str
    content: str

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class InitProgress:
    """Progress report emitted while an inference backend is constructed."""
    text: str
    progress: float = 0.0


@dataclass(frozen=True)
class GenerationOptions:
    """Per-request generation settings."""
    system_prompt: str = field(default=DEFAULT_SYSTEM_PROMPT)
    temperature: float = 0.7

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 2.0:
            raise InvalidArgument(f"temperature must be in [0, 2], got {self.temperature}")
