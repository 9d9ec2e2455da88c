"""Routes for creating, replacing and deleting files at caller-chosen paths."""

from fastapi import APIRouter, File, UploadFile, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..store import WriteOutcome
from .dependencies import ConfigDep, FileStoreDep, RequestPath, ensure_upload_size
from .schemas import MessageResponse

router = APIRouter(tags=["files"])


@router.post(
    "/{path:path}",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
)
async def create_file(
    target: RequestPath,
    store: FileStoreDep,
    config: ConfigDep,
    file: UploadFile = File(...),
) -> MessageResponse:
    """Create a file; 409 if one already exists at the path."""
    ensure_upload_size(file, config.max_upload_size)
    await run_in_threadpool(store.create, target, file.file)
    return MessageResponse(message="file created successfully")


@router.put("/{path:path}", response_model=MessageResponse)
async def upsert_file(
    target: RequestPath,
    store: FileStoreDep,
    config: ConfigDep,
    file: UploadFile = File(...),
) -> JSONResponse:
    """Create or replace a file; 201 when created, 200 when updated."""
    ensure_upload_size(file, config.max_upload_size)
    outcome = await run_in_threadpool(store.upsert, target, file.file)

    if outcome == WriteOutcome.UPDATED:
        body = MessageResponse(message="file updated successfully")
        return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump())
    body = MessageResponse(message="file created successfully")
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=body.model_dump())


@router.delete("/{path:path}", response_model=MessageResponse)
async def delete_file(target: RequestPath, store: FileStoreDep) -> MessageResponse:
    """Delete a file; 404 if missing, 400 if the path is a directory."""
    await run_in_threadpool(store.delete, target)
    return MessageResponse(message="file deleted successfully")
