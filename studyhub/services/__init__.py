"""Services for external integrations and domain logic."""

from studyhub.services.chat_service import chat_service
from studyhub.services.email_service import email_service
from studyhub.services.file_extractor import file_extractor
from studyhub.services.rate_limiter import rate_limiter
from studyhub.services.storage import storage_service

__all__ = ["chat_service", "email_service", "file_extractor", "rate_limiter", "storage_service"]
