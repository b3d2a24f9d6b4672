"""Chat API endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from journal_recall.api.dependencies import get_chat_service
from journal_recall.domain.models import ChatTurnRequest, RetrievalCandidate
from journal_recall.services.chat import ChatService

router = APIRouter()


class ChatResponse(BaseModel):
    reply: str
    mode: str
    matches: list[RetrievalCandidate]


@router.post("", response_model=ChatResponse, operation_id="chat")
async def chat(
    request: ChatTurnRequest,
    chat_service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """Reply to a message using related journal entries and recent history as context."""
    result = await chat_service.reply(request)
    return ChatResponse(reply=result.reply, mode=request.mode, matches=result.context.matches)
