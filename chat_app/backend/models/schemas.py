"""
Pydantic models for API request/response schemas.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class IngestedFile(BaseModel):
    """One successfully ingested document."""
    name: str = Field(..., description="Uploaded filename")
    text_length: int = Field(..., description="Characters of extracted text")
    chunk_count: int = Field(..., description="Chunks produced from the document")
    vector_count: int = Field(..., description="Records in the store after this document")


class IngestResponse(BaseModel):
    """Response from POST /api/documents."""
    ingested: List[IngestedFile] = Field(..., description="Documents added to the knowledge base")
    skipped: List[str] = Field(default_factory=list, description="Unsupported or unreadable uploads")
    total_chunks: int = Field(..., description="Chunks in the knowledge base")


class SourcesResponse(BaseModel):
    """Response from GET /api/documents."""
    sources: List[str] = Field(..., description="Documents in the knowledge base")
    total_chunks: int = Field(..., description="Chunks in the knowledge base")


class ChatRequest(BaseModel):
    """Request for POST /api/chat."""
    message: str = Field(..., description="User message", min_length=1)
    system_prompt: Optional[str] = Field(None, description="Replaces the system prompt for this and later messages")
    temperature: Optional[float] = Field(None, description="Sampling temperature", ge=0.0, le=2.0)


class StatusResponse(BaseModel):
    """Response from GET /api/status."""
    label: str = Field(..., description="Current status label")
    style: str = Field(..., description="Style hint for the status label")
    loading: bool = Field(..., description="Whether a reply is being generated")
    messages: List[str] = Field(default_factory=list, description="Recent system messages")


class ActionResponse(BaseModel):
    """Acknowledgement for chat control actions."""
    ok: bool = True
    detail: str = ""


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    backend_state: str = Field(..., description="Inference backend state")
    llm_provider: str
    embedding_model: str
    total_chunks: int = 0
    document_count: int = Field(0, description="Documents in the knowledge base")
    embedding_dim: Optional[int] = Field(None, description="Embedding dimension of the stored chunks")
