"""API routes for the chat assistant and its conversations."""

import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sse_starlette.sse import EventSourceResponse

from studyhub.api.deps import CurrentUser, DbSession, OptionalUser
from studyhub.config import sanitize_error
from studyhub.db.models import ChatRole, Conversation, MessageType
from studyhub.schemas.chat import (
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatRequest,
    ConversationCreateRequest,
    ConversationListResponse,
    ConversationResponse,
    ConversationUpdateRequest,
    ConversationWithMessages,
)
from studyhub.security import detect_suspicious_input, is_valid_uuid, log_security_event, sanitize_text
from studyhub.services.chat_service import ConversationNotFoundError, chat_service
from studyhub.services.rate_limiter import RateLimit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

FILE_MESSAGE_PREFIX = "📁"

# Partial replies saved after a disconnect; referenced so they are not collected mid-flight
_pending_saves: set[asyncio.Task] = set()


def _save_in_background(conversation_id: UUID, user_id: UUID, content: str) -> None:
    task = asyncio.create_task(
        chat_service.save_assistant_reply(conversation_id, user_id, content, partial=True)
    )
    _pending_saves.add(task)
    task.add_done_callback(_pending_saves.discard)


async def _active_conversation_or_404(db: DbSession, conversation_id: UUID, user_id: UUID) -> Conversation:
    try:
        return await chat_service.get_or_create_conversation(db, user_id, conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")


# =============================================================================
# CHAT STREAMING
# =============================================================================


@router.post("", dependencies=[Depends(RateLimit("chat"))])
async def chat(
    data: ChatRequest,
    request: Request,
    db: DbSession,
    user: OptionalUser,
):
    """
    Relay the message history to the assistant and stream the reply as Server-Sent Events.

    Events:
    - 'message': Text chunks from the assistant
    - 'done': Streaming complete and the reply saved
    - 'error': Error occurred

    The conversation id is returned in the X-Conversation-Id header. A
    reply cut short by a disconnect is still saved, flagged as partial.
    """
    for message in data.messages:
        if message.content.startswith(FILE_MESSAGE_PREFIX):
            continue
        if detect_suspicious_input(message.content):
            log_security_event("suspicious_content", request, role=message.role)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Content contains potentially harmful patterns",
            )

    history = [{"role": m.role, "content": sanitize_text(m.content)} for m in data.messages]

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    last = history[-1]
    try:
        conversation = await chat_service.get_or_create_conversation(
            db, user.id, data.conversation_id, first_message=last["content"]
        )
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")

    if last["role"] == ChatRole.USER.value:
        message_type = (
            MessageType.FILE.value if last["content"].startswith(FILE_MESSAGE_PREFIX) else MessageType.TEXT.value
        )
        await chat_service.append_message(db, conversation, ChatRole.USER.value, last["content"], message_type)

    conversation_id = conversation.id
    user_id = user.id

    async def event_generator():
        """Generate SSE events for streaming response."""
        full_response = ""

        try:
            async for chunk in chat_service.stream_reply(history):
                full_response += chunk
                yield {"event": "message", "data": chunk}
        except asyncio.CancelledError:
            logger.info("Client left conversation %s mid-reply", conversation_id)
            if full_response:
                _save_in_background(conversation_id, user_id, full_response)
            raise
        except Exception as e:
            logger.exception("Error during chat streaming")
            if full_response:
                await chat_service.save_assistant_reply(conversation_id, user_id, full_response, partial=True)
            yield {"event": "error", "data": sanitize_error(e, generic_message="An error occurred during chat.")}
            return

        await chat_service.save_assistant_reply(conversation_id, user_id, full_response)
        yield {"event": "done", "data": ""}

    return EventSourceResponse(
        event_generator(),
        headers={"X-Conversation-Id": str(conversation_id)},
    )


@router.get("", response_model=ChatHistoryResponse, dependencies=[Depends(RateLimit("api"))])
async def chat_history(
    db: DbSession,
    user: CurrentUser,
    conversation_id: str | None = None,
):
    """Get a conversation and its messages, oldest first."""
    if not conversation_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="conversation_id is required")
    if not is_valid_uuid(conversation_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="conversation_id is invalid")

    conversation = await _active_conversation_or_404(db, UUID(conversation_id), user.id)
    messages = await chat_service.list_messages(db, conversation.id)

    return ChatHistoryResponse(
        conversation=ConversationResponse.model_validate(conversation),
        messages=[ChatMessageResponse.model_validate(m) for m in messages],
    )


# =============================================================================
# CONVERSATION MANAGEMENT
# =============================================================================


@router.get(
    "/conversations",
    response_model=ConversationListResponse,
    dependencies=[Depends(RateLimit("api"))],
)
async def list_conversations(
    db: DbSession,
    user: CurrentUser,
    skip: int = 0,
    limit: int = 50,
):
    """List user's active conversations, ordered by most recent."""
    active = (Conversation.user_id == user.id, Conversation.is_active.is_(True))

    total_result = await db.execute(select(func.count()).select_from(Conversation).where(*active))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Conversation)
        .where(*active)
        .order_by(Conversation.updated_at.desc())
        .offset(skip)
        .limit(limit)
    )
    conversations = result.scalars().all()

    return ConversationListResponse(
        conversations=[ConversationResponse.model_validate(c) for c in conversations],
        total=total,
    )


@router.post(
    "/conversations",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("api"))],
)
async def create_conversation(
    request: ConversationCreateRequest,
    db: DbSession,
    user: CurrentUser,
):
    """Create an empty conversation."""
    conversation = Conversation(user_id=user.id, title=request.title)
    db.add(conversation)
    await db.commit()
    await db.refresh(conversation)

    return ConversationResponse.model_validate(conversation)


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationWithMessages,
    dependencies=[Depends(RateLimit("api"))],
)
async def get_conversation(
    conversation_id: UUID,
    db: DbSession,
    user: CurrentUser,
):
    """Get conversation with full message history."""
    conversation = await _active_conversation_or_404(db, conversation_id, user.id)
    messages = await chat_service.list_messages(db, conversation.id)

    return ConversationWithMessages(
        **ConversationResponse.model_validate(conversation).model_dump(),
        messages=[ChatMessageResponse.model_validate(m) for m in messages],
    )


@router.patch(
    "/conversations/{conversation_id}",
    response_model=ConversationResponse,
    dependencies=[Depends(RateLimit("api"))],
)
async def rename_conversation(
    conversation_id: UUID,
    request: ConversationUpdateRequest,
    db: DbSession,
    user: CurrentUser,
):
    """Rename a conversation."""
    conversation = await _active_conversation_or_404(db, conversation_id, user.id)
    conversation.title = request.title
    await db.commit()
    await db.refresh(conversation)

    return ConversationResponse.model_validate(conversation)


@router.delete(
    "/conversations/{conversation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(RateLimit("api"))],
)
async def delete_conversation(
    conversation_id: UUID,
    db: DbSession,
    user: CurrentUser,
):
    """Hide a conversation. Its messages are kept until the account is deleted."""
    conversation = await _active_conversation_or_404(db, conversation_id, user.id)
    conversation.is_active = False
    await db.commit()

    return None
