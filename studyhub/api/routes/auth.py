"""
Authentication Routes

Endpoints:
- POST /auth/signup - Create an account (institutional email only)
- POST /auth/login - Exchange email/password for a session
- POST /auth/logout - Clear session
- GET /auth/me - Get current user profile
- PATCH /auth/me - Update profile fields
- DELETE /auth/me - Delete the account and everything it owns
- POST /auth/change-password - Set a new password while signed in
- POST /auth/reset-password - Email a reset link
- POST /auth/reset-password/confirm - Set a new password from a reset link

Security:
- The email domain is checked before any database or password work
- Passwords are stored as bcrypt hashes
- JWT is returned in an HttpOnly cookie and in the response body
- Login failures never say whether the email exists
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from studyhub.api.deps import (
    CurrentUser,
    DbSession,
    create_access_token,
    create_reset_token,
    decode_reset_token,
    hash_password,
    verify_password,
)
from studyhub.config import get_settings
from studyhub.db.models import User
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
from studyhub.schemas.user import UserRead, UserUpdate
from studyhub.security import (
    InvalidRequestError,
    is_institutional_email,
    is_valid_name,
    is_valid_password,
    log_security_event,
    sanitize_text,
    validate_fields,
)
from studyhub.services.account import delete_account
from studyhub.services.email_service import email_service
from studyhub.services.rate_limiter import RateLimit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()

RESET_REQUESTED_MESSAGE = "If an account exists for that email, a password reset link has been sent."

# Checked after the domain, so a foreign address never reaches these
SIGNUP_FIELDS = {
    "password": is_valid_password,
    "name": lambda value: is_valid_name(sanitize_text(value)),
}


def domain_error_message() -> str:
    return (
        f"Only {settings.institution_name} students with "
        f"@{settings.allowed_email_domain} emails can sign up."
    )


def _require_institutional_email(email: str, request: Request) -> str:
    """Normalize the address and reject anything outside the allowed domain."""
    email = email.strip().lower()
    if not is_institutional_email(email):
        log_security_event("non_institutional_email", request, email_domain=email.rpartition("@")[2])
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=domain_error_message())
    return email


def _cookie_kwargs() -> dict:
    # For cross-domain deployments, use samesite="none" + secure=True
    return {
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment != "development",
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


def _issue_session(user: User, response: Response) -> TokenResponse:
    access_token = create_access_token(user.id)
    expires_in = settings.jwt_expire_minutes * 60
    response.set_cookie(key="access_token", value=access_token, max_age=expires_in, **_cookie_kwargs())
    return TokenResponse(access_token=access_token, expires_in=expires_in)


@router.post(
    "/signup",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("auth"))],
)
async def signup(
    data: SignupRequest,
    request: Request,
    response: Response,
    db: DbSession,
) -> TokenResponse:
    """Create an account and start a session."""
    email = _require_institutional_email(data.email, request)

    checked = validate_fields(data.model_dump(), SIGNUP_FIELDS)
    if not checked.valid:
        raise InvalidRequestError(checked.errors)
    name = sanitize_text(checked.data["name"]).strip()

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email already exists",
        )

    user = User(email=email, name=name, password_hash=hash_password(checked.data["password"]))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email already exists",
        )
    await db.refresh(user)

    logger.info("New account %s", user.id)
    return _issue_session(user, response)


@router.post("/login", response_model=TokenResponse, dependencies=[Depends(RateLimit("auth"))])
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    db: DbSession,
) -> TokenResponse:
    """Exchange email and password for a session JWT."""
    email = _require_institutional_email(data.email, request)
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(data.password, user.password_hash):
        log_security_event("login_failed", request)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _issue_session(user, response)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication session.

    Note: This only clears the cookie. If the client stored the JWT
    elsewhere, it remains valid until expiry.
    """
    response.delete_cookie(key="access_token", **_cookie_kwargs())


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Get the current authenticated user's profile."""
    return UserRead.model_validate(current_user)


@router.patch("/me", response_model=UserRead)
async def update_me(data: UserUpdate, current_user: CurrentUser, db: DbSession) -> UserRead:
    """Update name, student ID, program or year. Sending null clears an optional field."""
    changes = data.model_dump(exclude_unset=True)
    if changes.get("name") is None:
        changes.pop("name", None)
    for key, value in changes.items():
        setattr(current_user, key, value)
    await db.commit()
    await db.refresh(current_user)
    return UserRead.model_validate(current_user)


@router.delete("/me", response_model=AccountDeletionResponse)
async def delete_me(
    request: Request,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
) -> AccountDeletionResponse:
    """
    Delete the account and all data it owns.

    Tables are cleared one at a time without a surrounding transaction, so
    a failure part-way leaves earlier tables empty. The response lists any
    tables that could not be cleared.
    """
    user_id = current_user.id
    result = await delete_account(db, user_id)
    log_security_event(
        "account_deleted" if result.deleted else "account_deletion_incomplete",
        request,
        user_id=str(user_id),
        failed_tables=result.failed_tables,
    )
    if result.deleted:
        response.delete_cookie(key="access_token", **_cookie_kwargs())
    return AccountDeletionResponse(deleted=result.deleted, failed_tables=result.failed_tables)


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(data: ChangePasswordRequest, current_user: CurrentUser, db: DbSession) -> None:
    """Set a new password for the signed-in user."""
    current_user.password_hash = hash_password(data.new_password)
    await db.commit()


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(RateLimit("auth"))],
)
async def request_password_reset(
    data: ResetPasswordRequest,
    request: Request,
    db: DbSession,
) -> MessageResponse:
    """
    Email a password reset link.

    The response is the same whether or not the account exists.
    """
    email = _require_institutional_email(data.email, request)

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is not None:
        token = create_reset_token(user.id)
        await email_service.send_password_reset_email(user.email, user.name, token)

    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password/confirm", status_code=status.HTTP_204_NO_CONTENT)
async def confirm_password_reset(data: ResetPasswordConfirm, db: DbSession) -> None:
    """Set a new password using the token from a reset email."""
    invalid = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Reset link is invalid or has expired",
    )
    user_id = decode_reset_token(data.token)
    if user_id is None:
        raise invalid

    user = await db.get(User, user_id)
    if user is None:
        raise invalid

    user.password_hash = hash_password(data.new_password)
    await db.commit()
