from .schemas import (
    IngestedFile,
    IngestResponse,
    SourcesResponse,
    ChatRequest,
    StatusResponse,
    ActionResponse,
    HealthResponse,
)

__all__ = [
    "IngestedFile",
    "IngestResponse",
    "SourcesResponse",
    "ChatRequest",
    "StatusResponse",
    "ActionResponse",
    "HealthResponse",
]
