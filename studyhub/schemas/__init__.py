"""Pydantic schemas for API request/response validation."""

from studyhub.schemas.user import UserRead, UserUpdate
from studyhub.schemas.auth import (
    AccountDeletionResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordConfirm,
    ResetPasswordRequest,
    SignupRequest,
    TokenResponse,
)
from studyhub.schemas.tasks import TaskCreate, TaskRead, TaskSummary, TaskUpdate
from studyhub.schemas.notes import NoteCreate, NoteRead, NoteUpdate
from studyhub.schemas.timetable import (
    TimetableEntryCreate,
    TimetableEntryRead,
    TimetableEntryUpdate,
    TimetableResponse,
)
from studyhub.schemas.study_logs import StudyLogCreate, StudyLogRead, StudyLogUpdate, StudyStatsResponse
from studyhub.schemas.resources import BookmarkCreate, BookmarkRead, BookmarkStatus, FileProcessResponse, ResourceRead
from studyhub.schemas.chat import (
    ChatHistoryResponse,
    ChatMessageIn,
    ChatMessageResponse,
    ChatRequest,
    ConversationCreateRequest,
    ConversationListResponse,
    ConversationResponse,
    ConversationUpdateRequest,
    ConversationWithMessages,
)

__all__ = [
    # User
    "UserRead",
    "UserUpdate",
    # Auth
    "AccountDeletionResponse",
    "ChangePasswordRequest",
    "LoginRequest",
    "MessageResponse",
    "ResetPasswordConfirm",
    "ResetPasswordRequest",
    "SignupRequest",
    "TokenResponse",
    # Tasks
    "TaskCreate",
    "TaskRead",
    "TaskSummary",
    "TaskUpdate",
    # Notes
    "NoteCreate",
    "NoteRead",
    "NoteUpdate",
    # Timetable
    "TimetableEntryCreate",
    "TimetableEntryRead",
    "TimetableEntryUpdate",
    "TimetableResponse",
    # Study logs
    "StudyLogCreate",
    "StudyLogRead",
    "StudyLogUpdate",
    "StudyStatsResponse",
    # Resources
    "BookmarkCreate",
    "BookmarkRead",
    "BookmarkStatus",
    "FileProcessResponse",
    "ResourceRead",
    # Chat
    "ChatHistoryResponse",
    "ChatMessageIn",
    "ChatMessageResponse",
    "ChatRequest",
    "ConversationCreateRequest",
    "ConversationListResponse",
    "ConversationResponse",
    "ConversationUpdateRequest",
    "ConversationWithMessages",
]
