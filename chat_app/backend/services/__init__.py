from .chat_service import ChatService, ReplyStream, StreamingChatView, get_chat_service

__all__ = ["ChatService", "ReplyStream", "StreamingChatView", "get_chat_service"]
