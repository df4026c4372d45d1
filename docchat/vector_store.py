"""
Vector Store Module

In-memory, append-only store of embedded chunks with:
- Dimensionality check on every append
- Cosine similarity ranking with insertion-order tie-break
- Source listing
"""
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

import numpy as np

from .data_models import ChunkRecord
from .errors import DimensionMismatch, InvalidArgument
from .utils import compute_cosine_similarities


class VectorStore:
    """
    In-memory vector store for the RAG engine.

    Records are kept in insertion order. The store has a single writer (the
    retrieval engine serialises ingestion); ``rank`` is a pure read.
    """

    def __init__(self):
        self._records: List[ChunkRecord] = []
        self._ids: Set[str] = set()
        self._dimension: Optional[int] = None
        # Row cache of the embedding matrix, rebuilt lazily after appends
        self._matrix: Optional[np.ndarray] = None

    @property
    def count(self) -> int:
        """Get the number of records in the store."""
        return len(self._records)

    @property
    def dimension(self) -> Optional[int]:
        """Embedding dimensionality fixed by the first record, if any."""
        return self._dimension

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ChunkRecord]:
        return iter(list(self._records))

    def append(self, record: ChunkRecord) -> None:
        """
        Append a record to the store.

        Args:
            record: ChunkRecord to store

        Raises:
            DimensionMismatch: embedding length differs from the stored records
            InvalidArgument: a record with the same id already exists
        """
        if self._dimension is not None and record.dimension != self._dimension:
            raise DimensionMismatch(self._dimension, record.dimension)
        if record.id in self._ids:
            raise InvalidArgument(f"Duplicate record id: {record.id}")

        if self._dimension is None:
            self._dimension = record.dimension
        self._records.append(record)
        self._ids.add(record.id)
        self._matrix = None

    def unique_sources(self) -> Set[str]:
        """Return the set of source identifiers in the store."""
        return {record.source for record in self._records}

    def rank(self, query_vector: np.ndarray, k: int) -> List[Tuple[ChunkRecord, float]]:
        """
        Rank stored records by cosine similarity to a query vector.

        Args:
            query_vector: Query embedding
            k: Number of results to return

        Returns:
            Up to k (record, score) pairs, highest score first; equal scores
            keep insertion order
        """
        if k <= 0 or not self._records:
            return []

        query = np.asarray(query_vector, dtype=np.float32).reshape(-1)
        if query.shape[0] != self._dimension:
            raise DimensionMismatch(self._dimension, query.shape[0])

        scores = compute_cosine_similarities(query, self._embedding_matrix())
        order = np.argsort(-scores, kind="stable")[:k]
        return [(self._records[i], float(scores[i])) for i in order]

    def clear(self) -> int:
        """
        Remove all records.

        Returns:
            Number of records removed
        """
        count = len(self._records)
        self._records = []
        self._ids = set()
        self._dimension = None
        self._matrix = None
        return count

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get statistics about the vector store.

        Returns:
            Dictionary with statistics
        """
        sources = sorted(self.unique_sources())
        return {
            'total_chunks': len(self._records),
            'unique_sources': len(sources),
            'sources': sources,
            'dimension': self._dimension,
        }

    def _embedding_matrix(self) -> np.ndarray:
        if self._matrix is None or self._matrix.shape[0] != len(self._records):
            self._matrix = np.vstack([record.embedding for record in self._records])
        return self._matrix
