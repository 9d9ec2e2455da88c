"""Route for anonymous uploads under generated ids."""

import logging

from fastapi import APIRouter, File, Query, UploadFile, status

from ..durations import format_duration, parse_duration
from ..media import extension_for_upload
from .dependencies import ConfigDep, CoordinatorDep, ensure_upload_size
from .schemas import UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=UploadResponse,
)
async def upload_file(
    coordinator: CoordinatorDep,
    config: ConfigDep,
    file: UploadFile = File(...),
    expire: str | None = Query(default=None, description="e.g. 30m, 24h, 168h"),
) -> UploadResponse:
    """Store a file under a generated id, optionally deleting it after ``expire``."""
    ttl = parse_duration(expire) if expire else config.default_expire
    logger.info(f"expire: {format_duration(ttl) if ttl else 'never'}")

    ensure_upload_size(file, config.max_upload_size)
    extension = extension_for_upload(file.content_type, file.filename)

    receipt = await coordinator.upload(file.file, extension=extension, ttl=ttl)
    return UploadResponse(message="file uploaded successfully", path=receipt.path)
