"""Chat service: conversation bookkeeping and streaming relay to the LLM."""

import logging
from collections.abc import AsyncIterator
from uuid import UUID

from anthropic import AsyncAnthropic
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studyhub.config import get_settings
from studyhub.db.models import ChatRole, Conversation, Message, MessageType, utcnow
from studyhub.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)
settings = get_settings()

SYSTEM_PROMPT = """You are an AI academic assistant designed to help university students with their studies. Please provide helpful, accurate, and educational responses. Focus on:
- Clear explanations
- Educational value
- Academic integrity
- Constructive learning

Avoid providing direct answers to homework/exam questions that could encourage cheating. Instead, guide students to understand concepts. Be encouraging and supportive while maintaining high academic standards."""

TITLE_MAX_CHARS = 50
DEFAULT_TITLE = "New Chat"


class ConversationNotFoundError(Exception):
    """The conversation does not exist or belongs to someone else."""


def conversation_title(first_message: str | None) -> str:
    """First 50 characters of the opening message, with an ellipsis if cut."""
    if not first_message:
        return DEFAULT_TITLE
    title = first_message[:TITLE_MAX_CHARS]
    if len(first_message) > TITLE_MAX_CHARS:
        title += "..."
    return title


class ChatService:
    """Service for relaying chat history to Claude and persisting the exchange."""

    def __init__(self):
        """Initialize Anthropic client."""
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        # Replies are saved after the request session has closed
        self.session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal

    async def get_or_create_conversation(
        self,
        db: AsyncSession,
        user_id: UUID,
        conversation_id: UUID | None,
        first_message: str | None = None,
    ) -> Conversation:
        """
        Return the caller's conversation, creating one when no id is given.

        Raises:
            ConversationNotFoundError: If the id is unknown, inactive or owned by another user
        """
        if conversation_id is None:
            conversation = Conversation(user_id=user_id, title=conversation_title(first_message))
            db.add(conversation)
            await db.commit()
            await db.refresh(conversation)
            logger.info("Created conversation %s for user %s", conversation.id, user_id)
            return conversation

        result = await db.execute(
            select(Conversation).where(
                Conversation.id == conversation_id,
                Conversation.user_id == user_id,
                Conversation.is_active.is_(True),
            )
        )
        conversation = result.scalar_one_or_none()
        if conversation is None:
            raise ConversationNotFoundError(str(conversation_id))
        return conversation

    async def append_message(
        self,
        db: AsyncSession,
        conversation: Conversation,
        role: str,
        content: str,
        message_type: str = MessageType.TEXT.value,
        metadata: dict | None = None,
    ) -> Message:
        """Store a message and bump the conversation's updated_at."""
        message = Message(
            conversation_id=conversation.id,
            user_id=conversation.user_id,
            role=role,
            content=content,
            message_type=message_type,
            message_metadata=metadata or {},
        )
        db.add(message)
        conversation.updated_at = utcnow()
        await db.commit()
        await db.refresh(message)
        return message

    async def list_messages(self, db: AsyncSession, conversation_id: UUID) -> list[Message]:
        result = await db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
        )
        return list(result.scalars())

    async def stream_reply(self, messages: list[dict]) -> AsyncIterator[str]:
        """
        Stream Claude's reply to a message history.

        System-role messages are appended to the fixed academic system prompt;
        the rest are relayed in order. Errors propagate to the caller and
        nothing is retried.

        Yields:
            Text chunks from Claude's streaming response
        """
        system_parts = [SYSTEM_PROMPT]
        history = []
        for message in messages:
            if message["role"] == "system":
                system_parts.append(message["content"])
            else:
                history.append({"role": message["role"], "content": message["content"]})

        async with self.client.messages.stream(
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            system="\n\n".join(system_parts),
            messages=history,
        ) as stream:
            async for text in stream.text_stream:
                yield text

    async def save_assistant_reply(
        self,
        conversation_id: UUID,
        user_id: UUID,
        content: str,
        *,
        partial: bool = False,
    ) -> bool:
        """
        Persist a streamed reply in a fresh session.

        The reply has already reached the client, so failures are logged
        and reported as False rather than raised.
        """
        try:
            async with self.session_factory() as db:
                conversation = await db.get(Conversation, conversation_id)
                if conversation is None or conversation.user_id != user_id:
                    logger.warning("Conversation %s vanished before reply was saved", conversation_id)
                    return False
                await self.append_message(
                    db,
                    conversation,
                    role=ChatRole.ASSISTANT.value,
                    content=content,
                    metadata={"partial": True} if partial else None,
                )
            return True
        except SQLAlchemyError:
            logger.exception("Failed to save assistant reply for conversation %s", conversation_id)
            return False


# Singleton instance
chat_service = ChatService()
