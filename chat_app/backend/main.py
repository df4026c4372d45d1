"""
DocChat API

FastAPI backend for chatting with uploaded PDF documents.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docchat.logger import get_logger

from chat_app.backend.api import chat_router, documents_router
from chat_app.backend.models.schemas import HealthResponse
from chat_app.backend.services.chat_service import ChatService, get_chat_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Starts loading the models in the background on startup.
    """
    logger.info("Starting DocChat API...")
    service = get_chat_service()

    preload_task = None
    if service.config.preload:
        preload_task = asyncio.ensure_future(service.controller.preload())

    yield

    if preload_task is not None and not preload_task.done():
        preload_task.cancel()
    logger.info("Shutting down...")


app = FastAPI(
    title="DocChat API",
    description="""
    Chat with your PDF documents.

    ## Endpoints

    - `POST /api/documents` - Upload PDF documents
    - `GET /api/documents` - List documents in the knowledge base
    - `POST /api/chat` - Ask a question (streamed plain-text reply)
    - `POST /api/chat/stop` - Stop the reply being generated
    - `POST /api/chat/reset` - Start a new conversation
    - `GET /api/status` - Current status and system messages
    - `GET /api/health` - Health check
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(documents_router)
app.include_router(chat_router)


@app.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check(service: ChatService = Depends(get_chat_service)) -> HealthResponse:
    """
    Health check endpoint.

    Returns the model state and the size of the knowledge base.
    """
    stats = service.engine.get_statistics()
    return HealthResponse(
        status="healthy",
        backend_state=service.session.state.value,
        llm_provider=service.config.llm_provider,
        embedding_model=service.config.embedding_model,
        total_chunks=stats['total_chunks'],
        document_count=stats['unique_sources'],
        embedding_dim=stats['dimension'],
    )


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API info."""
    return {
        "name": "DocChat API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chat_app.backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
