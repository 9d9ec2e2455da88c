"""FastAPI dependencies resolving shared services from application state."""

import os
from typing import Annotated

from fastapi import Depends, Request, UploadFile

from ..config import FolioConfig
from ..errors import PayloadTooLargeError
from ..paths import RelativePath
from ..store import FileStore
from ..uploads import UploadCoordinator


def get_config(request: Request) -> FolioConfig:
    return request.app.state.config


def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store


def get_coordinator(request: Request) -> UploadCoordinator:
    return request.app.state.coordinator


ConfigDep = Annotated[FolioConfig, Depends(get_config)]
FileStoreDep = Annotated[FileStore, Depends(get_file_store)]
CoordinatorDep = Annotated[UploadCoordinator, Depends(get_coordinator)]


def resolve_request_path(path: str, store: FileStoreDep) -> RelativePath:
    """
    Resolve the ``{path}`` route parameter.

    Segments containing ".." are rejected before anything touches the
    filesystem.
    """
    return store.resolver.resolve(path, reject_traversal=True)


RequestPath = Annotated[RelativePath, Depends(resolve_request_path)]


def ensure_upload_size(upload: UploadFile, limit: int) -> None:
    """
    Reject uploads over ``limit`` bytes.

    Raises:
        PayloadTooLargeError: Upload is larger than the limit
    """
    size = upload.size
    if size is None:
        position = upload.file.tell()
        upload.file.seek(0, os.SEEK_END)
        size = upload.file.tell()
        upload.file.seek(position)
    if size > limit:
        raise PayloadTooLargeError(size, limit)
