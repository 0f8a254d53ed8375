"""
Study material uploads.

Files go to S3 under a key that never contains the user's file name;
the row keeps the sanitized name, size, type and public URL.
"""

import json
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from starlette.datastructures import UploadFile

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.config import get_settings, sanitize_error
from studyhub.db.models import Bookmark, Resource
from studyhub.schemas.resources import ResourceRead
from studyhub.security import (
    find_executable_signature,
    is_allowed_file_type,
    is_valid_file_size,
    is_valid_filename,
    is_valid_title,
    log_security_event,
    sanitize_filename,
    sanitize_text,
    validate_fields,
)
from studyhub.services.rate_limiter import RateLimit
from studyhub.services.storage import StorageError, build_object_key, storage_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/resources", tags=["resources"])
settings = get_settings()

MAX_TAGS = 10
MAX_TAG_LENGTH = 20

UPLOAD_FORM_FIELDS = {
    "file": lambda value: isinstance(value, UploadFile),
    "title": lambda value: isinstance(value, str) and bool(value.strip()),
}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def parse_tags(raw: str | None) -> list[str]:
    """
    Decode the tags form field (a JSON array of strings).

    Tags are sanitized, empty or over-long ones are dropped, and at most
    ten are kept. A value that is not JSON is a 400; valid JSON that is
    not an array yields no tags.
    """
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        raise _bad_request("Invalid tags format")
    if not isinstance(parsed, list):
        return []

    tags = [sanitize_text(tag).strip() for tag in parsed if isinstance(tag, str)]
    return [tag for tag in tags if 0 < len(tag) <= MAX_TAG_LENGTH][:MAX_TAGS]


# =============================================================================
# UPLOAD
# =============================================================================


@router.post(
    "/upload",
    response_model=ResourceRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("upload"))],
)
async def upload_resource(
    request: Request,
    current_user: CurrentUser,
    db: DbSession,
) -> ResourceRead:
    """
    Upload a study material file.

    Multipart fields:
    - file: the file itself
    - title: display title
    - tags: optional JSON array of strings

    The declared Content-Length is checked before the body is read.
    """
    content_length = request.headers.get("content-length")
    if not content_length or not content_length.isdigit() or int(content_length) > settings.max_request_size_bytes:
        log_security_event("oversized_request", request, content_length=content_length)
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Request too large")

    form = await request.form()
    checked = validate_fields(form, UPLOAD_FORM_FIELDS)
    if not checked.valid:
        logger.info("Rejected upload form: %s", checked.errors)
        raise _bad_request("File and title are required")
    upload: UploadFile = checked.data["file"]
    title: str = checked.data["title"]
    tags_field = form.get("tags")

    file_name = upload.filename or ""
    file_type = upload.content_type or ""

    if not is_allowed_file_type(file_type):
        log_security_event("invalid_file_type", request, file_type=file_type, file_name=file_name)
        raise _bad_request("File type not allowed")

    data = await upload.read()
    if not is_valid_file_size(len(data)):
        log_security_event("invalid_file_size", request, file_size=len(data), file_name=file_name)
        raise _bad_request("File is empty or too large (max 50MB)")

    if not is_valid_filename(file_name):
        log_security_event("invalid_filename", request, file_name=file_name)
        raise _bad_request("Invalid filename")

    clean_title = sanitize_text(title.strip())
    if not is_valid_title(clean_title):
        raise _bad_request("Invalid title format")

    tags = parse_tags(tags_field if isinstance(tags_field, str) else None)

    signature = find_executable_signature(data)
    if signature:
        log_security_event("malicious_file_signature", request, file_name=file_name, signature=signature)
        raise _bad_request("File contains suspicious content")

    file_key = build_object_key(current_user.id, file_name)
    try:
        await storage_service.upload_file(file_key, data, file_type)
    except StorageError as e:
        log_security_event("upload_failed", request, error=str(e), file_name=file_name)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=sanitize_error(e, generic_message="Upload failed."),
        )

    resource = Resource(
        user_id=current_user.id,
        title=clean_title,
        tags=tags,
        url=storage_service.public_url(file_key),
        file_name=sanitize_filename(file_name),
        file_size=len(data),
        file_type=file_type,
        file_path=file_key,
    )
    db.add(resource)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to record upload %s, removing stored object", file_key)
        try:
            await storage_service.delete_file(file_key)
        except StorageError:
            logger.exception("Failed to remove orphaned object %s", file_key)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Upload failed.",
        )
    await db.refresh(resource)

    log_security_event(
        "file_uploaded",
        request,
        file_name=file_name,
        file_size=len(data),
        file_type=file_type,
        resource_id=str(resource.id),
    )
    return ResourceRead.model_validate(resource)


# =============================================================================
# RESOURCE MANAGEMENT
# =============================================================================


@router.get("/", response_model=list[ResourceRead], dependencies=[Depends(RateLimit("api"))])
async def list_resources(
    current_user: CurrentUser,
    db: DbSession,
    q: str | None = None,
    tag: str | None = None,
) -> list[ResourceRead]:
    """
    List the current user's uploads, newest first.

    Filters:
    - q: Case-insensitive search in title
    - tag: Only resources carrying this exact tag
    """
    query = select(Resource).where(Resource.user_id == current_user.id)
    if q:
        query = query.where(Resource.title.ilike(f"%{q}%"))
    query = query.order_by(Resource.uploaded_at.desc())

    result = await db.execute(query)
    resources = list(result.scalars())
    # JSON containment differs between backends, so tags are matched here
    if tag:
        resources = [r for r in resources if tag in (r.tags or [])]
    return [ResourceRead.model_validate(r) for r in resources]


@router.get("/{resource_id}", response_model=ResourceRead, dependencies=[Depends(RateLimit("api"))])
async def get_resource(
    resource_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> ResourceRead:
    """Get a specific resource by ID."""
    resource = await get_user_resource_or_404(db, Resource, resource_id, current_user.id)
    return ResourceRead.model_validate(resource)


@router.delete(
    "/{resource_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(RateLimit("api"))],
)
async def delete_resource(
    resource_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete the stored file, then the resource row (and its bookmarks)."""
    resource = await get_user_resource_or_404(db, Resource, resource_id, current_user.id)

    try:
        await storage_service.delete_file(resource.file_path)
    except StorageError as e:
        logger.error("Failed to delete %s from storage: %s", resource.file_path, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=sanitize_error(e, generic_message="Failed to delete file."),
        )

    await db.execute(delete(Bookmark).where(Bookmark.resource_id == resource.id))
    await db.delete(resource)
    await db.commit()
