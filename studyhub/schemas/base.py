"""Base schema configuration and sanitized field types."""

from collections.abc import Callable
from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict

from studyhub.security import (
    is_valid_content,
    is_valid_name,
    is_valid_title,
    is_valid_topic,
    sanitize_text,
)


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=True,
    )


class ContentSchema(BaseSchema):
    """Base for schemas carrying free text (note bodies, chat messages) that must round-trip unchanged."""

    model_config = ConfigDict(str_strip_whitespace=False)


class TimestampMixin(BaseModel):
    """Mixin for created_at/updated_at timestamps."""

    created_at: datetime
    updated_at: datetime


class IDMixin(BaseModel):
    """Mixin for UUID primary key."""

    id: UUID


def _sanitized(validator: Callable[[str], bool], label: str) -> AfterValidator:
    """Strip markup, then apply a length validator to what is left."""

    def check(value: str) -> str:
        value = sanitize_text(value).strip()
        if not validator(value):
            raise ValueError(f"{label} is invalid")
        return value

    return AfterValidator(check)


SafeTitle = Annotated[str, _sanitized(is_valid_title, "title")]
SafeName = Annotated[str, _sanitized(is_valid_name, "name")]
SafeTopic = Annotated[str, _sanitized(is_valid_topic, "topic")]


def _check_content(value: str) -> str:
    value = sanitize_text(value)
    if not is_valid_content(value):
        raise ValueError("content is invalid")
    return value


# Note bodies may be empty
SafeContent = Annotated[str, AfterValidator(_check_content)]
