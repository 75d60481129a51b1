"""
Chat API
Portal assistant backed by an LLM
"""
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from portal.api.deps import get_chat_service
from portal.core.security import AuthSession, get_current_session
from portal.services.chat_service import ChatService

router = APIRouter()


# ==================== Schemas ====================

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=8000)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1, max_length=50)
    context: Optional[str] = Field(None, max_length=2000)


# ==================== Endpoints ====================

@router.post("/chat")
async def chat(
    request: ChatRequest,
    session: AuthSession = Depends(get_current_session),
    service: ChatService = Depends(get_chat_service),
):
    reply = await service.reply(
        [message.model_dump() for message in request.messages],
        context=request.context,
    )
    return {"success": True, "message": {"role": "assistant", "content": reply}}
