"""Authentication schemas."""

from pydantic import Field, field_validator

from studyhub.schemas.base import BaseSchema
from studyhub.security import MAX_EMAIL_LENGTH, is_valid_password


def _check_password(value: str) -> str:
    if not is_valid_password(value):
        raise ValueError("password is invalid")
    return value


class SignupRequest(BaseSchema):
    """
    Request schema for creating an account.

    Only types are checked here. The route checks the email domain first,
    so a wrong domain gets its own fixed message even when the password
    or name would also fail, then validates and sanitizes the rest.
    """

    email: str
    password: str
    name: str


class LoginRequest(BaseSchema):
    """Request schema for email/password login."""

    email: str = Field(..., max_length=MAX_EMAIL_LENGTH)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseSchema):
    """Response schema for successful authentication."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token expiry in seconds")


class ChangePasswordRequest(BaseSchema):
    """Set a new password for the signed-in user."""

    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)


class ResetPasswordRequest(BaseSchema):
    """Ask for a password reset link."""

    email: str = Field(..., max_length=MAX_EMAIL_LENGTH)


class ResetPasswordConfirm(BaseSchema):
    """Set a new password using a reset token from the email link."""

    token: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)


class MessageResponse(BaseSchema):
    message: str


class AccountDeletionResponse(BaseSchema):
    """Outcome of deleting an account. failed_tables lists tables that still hold data."""

    deleted: bool
    failed_tables: list[str] = Field(default_factory=list)
