"""
Input validation, sanitization and security helpers.

Validators return booleans and never raise. Callers collect failures
(see validate_fields) and turn them into a single 400 response.

Sanitizers strip markup that could be rendered back to a browser:
script and style blocks, inline event handlers, remaining tags and the
javascript:/data: protocols.
"""

import json
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import Request

from studyhub.config import get_settings

settings = get_settings()
security_logger = logging.getLogger("studyhub.security")


# =============================================================================
# LIMITS
# =============================================================================

MAX_TITLE_LENGTH = 100
MAX_CONTENT_LENGTH = 50_000
MAX_NAME_LENGTH = 50
MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128
MAX_MESSAGE_LENGTH = 10_000
MAX_TOPIC_LENGTH = 100
MAX_FILENAME_LENGTH = 255

ALLOWED_FILE_TYPES = frozenset(
    {
        "text/plain",
        "text/markdown",
        "text/csv",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "application/pdf",
        "application/zip",
        "application/x-zip-compressed",
        "application/x-rar-compressed",
        "application/vnd.rar",
        "application/x-7z-compressed",
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/bmp",
        "image/tiff",
        "image/svg+xml",
    }
)


# =============================================================================
# PATTERNS
# =============================================================================

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_SAFE_FILENAME_RE = re.compile(r"^[a-zA-Z0-9\s.\-_]+$")
_UNSAFE_FILENAME_CHARS_RE = re.compile(r"[^a-zA-Z0-9\s.\-_]")
_WHITESPACE_RE = re.compile(r"\s+")

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_ON_EVENT_RE = re.compile(r"\son\w+\s*=\s*[\"'][^\"']*[\"']", re.IGNORECASE)
_HTML_TAG_RE = re.compile(r"<[^>]*>")
_JAVASCRIPT_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_DATA_PROTOCOL_RE = re.compile(r"data:", re.IGNORECASE)

_SUSPICIOUS_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"<script",
        r"javascript:",
        r"vbscript:",
        r"onload=",
        r"onerror=",
        r"onclick=",
        r"eval\(",
        r"document\.",
        r"window\.",
        r"alert\(",
        r"confirm\(",
        r"prompt\(",
    )
)

# Leading bytes of native executables. Plain ZIP (PK) is not listed since
# every OOXML document starts with it.
EXECUTABLE_SIGNATURES = {
    b"MZ": "4d 5a",
    b"\x7fELF": "7f 45 4c 46",
    b"\xca\xfe\xba\xbe": "ca fe ba be",
}

_SUSPICIOUS_USER_AGENT_RE = re.compile(r"sqlmap|nmap|nikto|scanner|crawl|bot|spider", re.IGNORECASE)


# =============================================================================
# VALIDATORS
# =============================================================================


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email)) and len(email) <= MAX_EMAIL_LENGTH


def is_institutional_email(email: str, domain: str | None = None) -> bool:
    """Valid email whose address ends with @<allowed domain>."""
    domain = domain or settings.allowed_email_domain
    return is_valid_email(email) and email.lower().endswith(f"@{domain.lower()}")


def is_valid_password(password: str) -> bool:
    return MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH


def is_valid_name(name: str) -> bool:
    return 0 < len(name.strip()) <= MAX_NAME_LENGTH


def is_valid_title(title: str) -> bool:
    return 0 < len(title.strip()) <= MAX_TITLE_LENGTH


def is_valid_content(content: str) -> bool:
    """Content may be empty."""
    return len(content) <= MAX_CONTENT_LENGTH


def is_valid_message(message: str) -> bool:
    return 0 < len(message.strip()) <= MAX_MESSAGE_LENGTH


def is_valid_topic(topic: str) -> bool:
    return 0 < len(topic.strip()) <= MAX_TOPIC_LENGTH


def is_valid_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value))


def is_valid_filename(filename: str) -> bool:
    """Only letters, digits, whitespace, dot, hyphen and underscore. No path separators."""
    trimmed = filename.strip()
    return 0 < len(trimmed) <= MAX_FILENAME_LENGTH and bool(_SAFE_FILENAME_RE.match(trimmed))


def is_allowed_file_type(mime_type: str) -> bool:
    return mime_type in ALLOWED_FILE_TYPES


def is_valid_file_size(size: int) -> bool:
    return 0 < size <= settings.max_file_size_bytes


# =============================================================================
# SANITIZERS
# =============================================================================


def _strip_markup_once(text: str) -> str:
    text = _SCRIPT_RE.sub("", text)
    text = _STYLE_RE.sub("", text)
    text = _ON_EVENT_RE.sub("", text)
    text = _HTML_TAG_RE.sub("", text)
    text = _JAVASCRIPT_PROTOCOL_RE.sub("", text)
    return _DATA_PROTOCOL_RE.sub("", text)


def sanitize_text(text: str) -> str:
    """
    Remove markup and dangerous protocols from user text.

    Passes repeat until nothing changes, so removing one construct cannot
    assemble another (e.g. "javajavascript:script:") and
    sanitize_text(sanitize_text(x)) == sanitize_text(x).
    """
    previous = None
    while previous != text:
        previous = text
        text = _strip_markup_once(text)
    return text


def sanitize_filename(filename: str) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS_RE.sub("", filename.strip())
    return _WHITESPACE_RE.sub(" ", cleaned)[:MAX_FILENAME_LENGTH]


def detect_suspicious_input(text: str) -> bool:
    """True if the text contains script-injection markers."""
    return any(pattern.search(text) for pattern in _SUSPICIOUS_PATTERNS)


def find_executable_signature(data: bytes) -> str | None:
    """Hex of the executable signature the data starts with, if any."""
    for signature, label in EXECUTABLE_SIGNATURES.items():
        if data.startswith(signature):
            return label
    return None


def is_suspicious_user_agent(user_agent: str | None) -> bool:
    """Scanner or crawler user agents. Matches are logged, never blocked."""
    return bool(user_agent) and bool(_SUSPICIOUS_USER_AGENT_RE.search(user_agent))


# =============================================================================
# FIELD VALIDATION
# =============================================================================


@dataclass
class FieldValidation:
    """Outcome of validate_fields. data is only set when valid."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] | None = None


class InvalidRequestError(Exception):
    """Raised by routes that validate fields themselves; rendered like a schema error."""

    def __init__(self, errors: list[str]):
        super().__init__(", ".join(errors))
        self.errors = errors


def validate_fields(
    body: Mapping[str, Any],
    schema: Mapping[str, Callable[[Any], bool]],
) -> FieldValidation:
    """
    Check each field in schema against its validator.

    Missing (or None) fields produce "<field> is required"; failing
    validators produce "<field> is invalid". Fields not named in the
    schema are dropped from the returned data.
    """
    errors: list[str] = []
    data: dict[str, Any] = {}

    for key, validator in schema.items():
        value = body.get(key)
        if value is None:
            errors.append(f"{key} is required")
            continue
        try:
            ok = validator(value)
        except (TypeError, AttributeError):
            ok = False
        if not ok:
            errors.append(f"{key} is invalid")
            continue
        data[key] = value

    return FieldValidation(valid=not errors, errors=errors, data=data if not errors else None)


# =============================================================================
# REQUEST HELPERS
# =============================================================================


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For entry, then X-Real-IP, else "unknown"."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return "unknown"


_PRODUCTION_CSP = "; ".join(
    [
        "default-src 'self'",
        "script-src 'self'",
        "style-src 'self' https://fonts.googleapis.com",
        "font-src 'self' https://fonts.gstatic.com data:",
        "img-src 'self' data: https: blob:",
        "connect-src 'self'",
        "worker-src 'self' blob:",
        "object-src 'none'",
        "frame-ancestors 'none'",
        "base-uri 'self'",
        "form-action 'self'",
    ]
)

# The interactive API docs load their assets from a CDN with inline scripts
_DEVELOPMENT_CSP = "; ".join(
    [
        "default-src 'self'",
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net https://fonts.googleapis.com",
        "font-src 'self' https://fonts.gstatic.com data:",
        "img-src 'self' data: https: blob:",
        "connect-src 'self' http://localhost:* ws://localhost:*",
        "object-src 'none'",
        "frame-ancestors 'none'",
    ]
)


def get_security_headers(environment: str | None = None) -> dict[str, str]:
    """Fixed response headers. HSTS is only sent in production."""
    environment = environment or settings.environment
    headers = {
        "Content-Security-Policy": _DEVELOPMENT_CSP if environment == "development" else _PRODUCTION_CSP,
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    }
    if environment == "production":
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"
    return headers


def log_security_event(event: str, request: Request, **details: Any) -> None:
    """Write one JSON line describing a security-relevant event."""
    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "ip": get_client_ip(request),
        "user_agent": request.headers.get("user-agent"),
        "url": str(request.url),
        "method": request.method,
        **details,
    }
    security_logger.warning("SECURITY EVENT: %s", json.dumps(payload, default=str))
