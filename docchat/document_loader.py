"""
Document Loader Module

Document sources the retrieval engine can ingest. Each source exposes its
declared MIME type, a display name and an awaitable ``extract_text`` that
returns the page-concatenated plain text.
"""
import asyncio
import io
import mimetypes
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

from PyPDF2 import PdfReader

PDF_TYPE = "application/pdf"


@runtime_checkable
class Document(Protocol):
    """A document the retrieval engine can ingest."""

    type: str
    name: str

    async def extract_text(self) -> str: ...


def extract_pdf_text(stream: Union[str, Path, BinaryIO]) -> str:
    """
    Extract text from a PDF, one line per page.

    Args:
        stream: Path or binary file object holding the PDF

    Returns:
        Text of all pages, each followed by a newline
    """
    reader = PdfReader(stream)
    text_parts = []
    for page in reader.pages:
        page_text = page.extract_text() or ""
        text_parts.append(page_text + "\n")
    return "".join(text_parts)


class PdfDocument:
    """A document stored on the local filesystem."""

    def __init__(self, file_path: Union[str, Path], mime_type: Optional[str] = None):
        self.path = Path(file_path)
        self.name = self.path.name
        self.type = mime_type or mimetypes.guess_type(self.name)[0] or "application/octet-stream"

    async def extract_text(self) -> str:
        return await asyncio.to_thread(extract_pdf_text, str(self.path))

    def __repr__(self) -> str:
        return f"PdfDocument({str(self.path)!r}, type={self.type!r})"


class UploadedDocument:
    """A document received as raw bytes, e.g. from an HTTP upload."""

    def __init__(self, name: str, data: bytes, content_type: Optional[str] = None):
        self.name = name
        self.data = data
        self.type = content_type or mimetypes.guess_type(name)[0] or "application/octet-stream"

    async def extract_text(self) -> str:
        return await asyncio.to_thread(extract_pdf_text, io.BytesIO(self.data))

    def __repr__(self) -> str:
        return f"UploadedDocument({self.name!r}, {len(self.data)} bytes, type={self.type!r})"
