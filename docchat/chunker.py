"""
Text Chunker Module

Splits extracted document text into overlapping fixed-size windows.
Whitespace is normalised first, so page breaks and line wraps from the
PDF extractor never produce empty or whitespace-only chunks.
"""
import re
from typing import Any, Dict, List

from .errors import InvalidArgument

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to a single space and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def chunk_text(text: str, size: int = 500, overlap: int = 100) -> List[str]:
    """
    Split text into overlapping chunks.

    Args:
        text: Raw text extracted from a document
        size: Window length in characters
        overlap: Characters shared by consecutive windows (0 <= overlap < size)

    Returns:
        List of chunk strings; the last one may be shorter than ``size``
    """
    if size <= 0:
        raise InvalidArgument(f"Chunk size must be positive, got {size}")
    if overlap < 0 or overlap >= size:
        raise InvalidArgument(f"Overlap must be in [0, {size}), got {overlap}")

    if not text:
        return []
    clean = normalize_whitespace(text)

    chunks = []
    step = size - overlap
    start = 0
    while start < len(clean):
        chunks.append(clean[start:start + size])
        start += step
    return chunks


class TextChunker:
    """Fixed-window chunker bound to a configured size and overlap."""

    def __init__(self, chunk_size: int = 500, overlap: int = 100):
        """
        Initialize the chunker.

        Args:
            chunk_size: Target size of each chunk in characters
            overlap: Number of characters to overlap between chunks
        """
        if chunk_size <= 0:
            raise InvalidArgument(f"Chunk size must be positive, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise InvalidArgument(f"Overlap must be in [0, {chunk_size}), got {overlap}")

        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk(self, text: str) -> List[str]:
        return chunk_text(text, self.chunk_size, self.overlap)

    def get_statistics(self, chunks: List[str]) -> Dict[str, Any]:
        """
        Calculate statistics for a list of chunks.

        Args:
            chunks: List of chunk strings

        Returns:
            Dictionary with statistics
        """
        if not chunks:
            return {
                'total_chunks': 0,
                'avg_length': 0,
                'min_length': 0,
                'max_length': 0,
                'total_chars': 0,
            }

        lengths = [len(c) for c in chunks]
        return {
            'total_chunks': len(chunks),
            'avg_length': sum(lengths) / len(lengths),
            'min_length': min(lengths),
            'max_length': max(lengths),
            'total_chars': sum(lengths),
        }
