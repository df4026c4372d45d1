"""
Documents API - Upload documents and list the knowledge base.
"""

from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from docchat.document_loader import UploadedDocument

from ..models.schemas import IngestedFile, IngestResponse, SourcesResponse
from ..services.chat_service import ChatService, get_chat_service

router = APIRouter(prefix="/api", tags=["documents"])


@router.post("/documents", response_model=IngestResponse)
async def upload_documents(
    files: List[UploadFile] = File(..., description="PDF documents"),
    service: ChatService = Depends(get_chat_service),
) -> IngestResponse:
    """
    Add documents to the knowledge base.

    Unsupported file types and documents that fail to read are reported as
    skipped; the other uploads are still ingested.
    """
    documents = []
    for upload in files:
        data = await upload.read()
        documents.append(UploadedDocument(upload.filename or "upload.pdf", data, upload.content_type))

    results = await service.ingest(documents)
    ingested_names = {r.name for r in results}

    return IngestResponse(
        ingested=[
            IngestedFile(
                name=r.name,
                text_length=r.text_length,
                chunk_count=r.chunk_count,
                vector_count=r.vector_count,
            )
            for r in results
        ],
        skipped=[d.name for d in documents if d.name not in ingested_names],
        total_chunks=service.engine.chunk_count,
    )


@router.get("/documents", response_model=SourcesResponse)
async def list_documents(service: ChatService = Depends(get_chat_service)) -> SourcesResponse:
    """List the documents in the knowledge base."""
    return SourcesResponse(
        sources=sorted(service.engine.list_sources()),
        total_chunks=service.engine.chunk_count,
    )
