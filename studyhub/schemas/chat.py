"""Pydantic schemas for chat operations."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field, field_validator

from studyhub.schemas.base import BaseSchema, ContentSchema, IDMixin, SafeTitle, TimestampMixin
from studyhub.security import is_valid_message, is_valid_uuid


# Request schemas
class ChatMessageIn(BaseModel):
    """One entry of the history sent by the client."""

    role: Literal["user", "assistant", "system"]
    content: str

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        if not is_valid_message(value):
            raise ValueError("content is invalid")
        return value


class ChatRequest(BaseModel):
    """
    Request to relay a message history to the assistant.

    Without conversation_id a new conversation is created, titled after
    the last message.
    """

    messages: list[ChatMessageIn] = Field(..., min_length=1)
    conversation_id: UUID | None = Field(
        None, validation_alias=AliasChoices("conversation_id", "conversationId")
    )

    @field_validator("conversation_id", mode="before")
    @classmethod
    def check_conversation_id(cls, value: Any) -> Any:
        if value is not None and (not isinstance(value, str) or not is_valid_uuid(value)):
            raise ValueError("conversation_id is invalid")
        return value


class ConversationCreateRequest(BaseSchema):
    """Request to create a new conversation."""

    title: SafeTitle = "New Chat"


class ConversationUpdateRequest(BaseSchema):
    """Request to rename a conversation."""

    title: SafeTitle


# Response schemas
class ChatMessageResponse(ContentSchema, IDMixin):
    """Chat message response."""

    conversation_id: UUID
    role: str
    content: str
    message_type: str
    metadata: dict = Field(
        default_factory=dict, validation_alias=AliasChoices("message_metadata", "metadata")
    )
    created_at: datetime


class ConversationResponse(BaseSchema, IDMixin, TimestampMixin):
    """Conversation response."""

    user_id: UUID
    title: str
    is_active: bool


class ConversationWithMessages(ConversationResponse):
    """Conversation with message history."""

    messages: list[ChatMessageResponse]


class ConversationListResponse(BaseModel):
    """List of conversations."""

    conversations: list[ConversationResponse]
    total: int


class ChatHistoryResponse(BaseModel):
    """A conversation and its messages, oldest first."""

    conversation: ConversationResponse
    messages: list[ChatMessageResponse]
