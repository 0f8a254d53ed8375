"""File text extraction for the chat assistant."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, status

from studyhub.api.deps import CurrentUser
from studyhub.config import get_settings
from studyhub.schemas.resources import FileProcessResponse
from studyhub.security import log_security_event
from studyhub.services.file_extractor import file_extractor
from studyhub.services.rate_limiter import RateLimit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/files", tags=["files"])
settings = get_settings()


@router.post("/process", response_model=FileProcessResponse, dependencies=[Depends(RateLimit("upload"))])
async def process_file(
    file: UploadFile,
    request: Request,
    current_user: CurrentUser,
) -> FileProcessResponse:
    """
    Extract readable text from an uploaded file.

    Nothing is stored. Unsupported or unreadable files still return 200,
    with success=false and an explanation in content.
    """
    data = await file.read()
    file_name = file.filename or "upload"
    file_type = file.content_type or "application/octet-stream"

    if len(data) > settings.max_process_file_size_bytes:
        log_security_event("oversized_file", request, file_size=len(data), file_name=file_name)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File too large (max 100MB)",
        )

    result = await file_extractor.extract_or_fallback(data, file_type, file_name)
    logger.info("Processed %s (%s, %d bytes) for user %s", file_name, file_type, len(data), current_user.id)
    log_security_event(
        "file_processed",
        request,
        file_name=file_name,
        file_size=len(data),
        file_type=file_type,
        success=result.success,
    )

    return FileProcessResponse(
        success=result.success,
        file_name=file_name,
        file_type=file_type,
        file_size=len(data),
        content=result.content,
    )
