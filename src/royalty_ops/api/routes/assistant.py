"""Operations assistant endpoint."""

from fastapi import APIRouter

from royalty_ops.api.dependencies import Assistant
from royalty_ops.api.schemas import AssistantRequest, ChatMessageResponse

router = APIRouter(prefix="/assistant", tags=["assistant"])


@router.get("/welcome", response_model=ChatMessageResponse)
async def welcome(assistant: Assistant) -> ChatMessageResponse:
    """Opening message of a new conversation."""
    return ChatMessageResponse.model_validate(assistant.messages[0])


@router.post("/messages", response_model=ChatMessageResponse)
async def send_message(assistant: Assistant, payload: AssistantRequest) -> ChatMessageResponse:
    """Canned reply chosen by keyword."""
    reply = await assistant.reply(payload.message)
    return ChatMessageResponse.model_validate(reply)
