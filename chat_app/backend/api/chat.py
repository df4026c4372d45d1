"""
Chat API - Streaming replies and chat controls.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from docchat.errors import SessionBusy

from ..models.schemas import ActionResponse, ChatRequest, StatusResponse
from ..services.chat_service import ChatService, get_chat_service

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat")
async def chat(request: ChatRequest, service: ChatService = Depends(get_chat_service)) -> StreamingResponse:
    """
    Answer a message using the uploaded documents as context.

    The reply is streamed as plain text. Only one reply can be generated at
    a time.
    """
    try:
        stream = service.stream_reply(
            request.message,
            system_prompt=request.system_prompt,
            temperature=request.temperature,
        )
    except SessionBusy as e:
        raise HTTPException(status_code=409, detail=str(e))

    return StreamingResponse(stream, media_type="text/plain; charset=utf-8")


@router.post("/chat/stop", response_model=ActionResponse)
async def stop_generation(service: ChatService = Depends(get_chat_service)) -> ActionResponse:
    """Stop the reply being generated."""
    await service.stop()
    return ActionResponse(detail="Generation stopped")


@router.post("/chat/reset", response_model=ActionResponse)
async def reset_chat(service: ChatService = Depends(get_chat_service)) -> ActionResponse:
    """Clear the conversation history."""
    if service.is_busy:
        raise HTTPException(status_code=409, detail="A reply is being generated")
    service.reset()
    return ActionResponse(detail="Conversation cleared")


@router.get("/status", response_model=StatusResponse)
async def get_status(service: ChatService = Depends(get_chat_service)) -> StatusResponse:
    """Current status label and recent system messages."""
    view = service.view
    return StatusResponse(
        label=view.label,
        style=view.style,
        loading=view.loading,
        messages=list(view.messages),
    )
