"""
Tests for the sliding-window text chunker.
"""

import math

import pytest

from docchat.chunker import TextChunker, chunk_text, normalize_whitespace
from docchat.errors import InvalidArgument


class TestChunkText:
    """Window boundaries and validation."""

    def test_1200_chars_gives_three_chunks(self):
        text = "".join(chr(ord("a") + i % 26) for i in range(1200))
        chunks = chunk_text(text, size=500, overlap=100)

        assert [len(c) for c in chunks] == [500, 500, 400]
        assert chunks[0] == text[0:500]
        assert chunks[1] == text[400:900]
        assert chunks[2] == text[800:1200]

    def test_consecutive_chunks_share_overlap(self):
        text = "x" * 50 + "y" * 50 + "z" * 50
        chunks = chunk_text(text, size=60, overlap=20)

        for prev, cur in zip(chunks, chunks[1:]):
            assert cur[:20] == prev[-20:]

    def test_short_text_is_one_chunk(self):
        assert chunk_text("short text") == ["short text"]

    def test_empty_and_whitespace_only(self):
        assert chunk_text("") == []
        assert chunk_text("  \n\t  ") == []

    def test_whitespace_is_normalized(self):
        chunks = chunk_text("Page one\n\n  line   two\tend\n")
        assert chunks == ["Page one line two end"]

    def test_no_overlap(self):
        assert chunk_text("abcdefgh", size=3, overlap=0) == ["abc", "def", "gh"]

    @pytest.mark.parametrize("size,overlap", [(500, 500), (500, 600), (10, -1), (0, 0)])
    def test_invalid_window(self, size, overlap):
        with pytest.raises(InvalidArgument):
            chunk_text("some text", size=size, overlap=overlap)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            chunk_text("some text", size=100, overlap=100)


class TestTextChunker:
    def test_uses_configured_window(self):
        chunker = TextChunker(chunk_size=4, overlap=1)
        assert chunker.chunk("abcdefg") == ["abcd", "defg", "g"]

    def test_rejects_bad_overlap(self):
        with pytest.raises(InvalidArgument):
            TextChunker(chunk_size=100, overlap=100)

    def test_statistics(self):
        chunker = TextChunker()
        stats = chunker.get_statistics(["aaaa", "bb"])

        assert stats['total_chunks'] == 2
        assert stats['avg_length'] == 3
        assert stats['min_length'] == 2
        assert stats['max_length'] == 4
        assert stats['total_chars'] == 6

    def test_statistics_empty(self):
        assert TextChunker().get_statistics([])['total_chunks'] == 0


def test_normalize_whitespace():
    assert normalize_whitespace("  a\n\nb\t c  ") == "a b c"


WINDOWS = [
    (1, 500, 100),
    (100, 500, 100),
    (450, 500, 100),
    (500, 500, 100),
    (501, 500, 100),
    (1200, 500, 100),
    (2000, 300, 0),
    (997, 64, 63),
    (10, 3, 1),
]


@pytest.mark.parametrize("length,size,overlap", WINDOWS)
class TestWindowProperties:
    """Chunk count and coverage hold for any window."""

    @staticmethod
    def make_text(length):
        return "".join(chr(ord("a") + i % 26) for i in range(length))

    def test_chunk_count(self, length, size, overlap):
        chunks = chunk_text(self.make_text(length), size=size, overlap=overlap)

        step = size - overlap
        assert len(chunks) == math.ceil(length / step)
        if overlap <= step:
            # Windows keep starting until the start passes the end of the text
            assert abs(len(chunks) - math.ceil(max(length - overlap, 1) / step)) <= 1

    def test_every_character_covered(self, length, size, overlap):
        text = self.make_text(length)
        chunks = chunk_text(text, size=size, overlap=overlap)

        rebuilt = chunks[0] + "".join(chunk[overlap:] for chunk in chunks[1:])
        assert rebuilt == text
        assert all(len(chunk) <= size for chunk in chunks)
        for i, chunk in enumerate(chunks):
            start = i * (size - overlap)
            assert chunk == text[start:start + size]
