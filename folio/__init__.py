"""Folio file service.

Exposes managed files over HTTP and deletes expiring uploads exactly once,
even across process restarts.

Example:
    from datetime import timedelta

    from folio import FileStore, IdGenerator, PathResolver, UploadCoordinator
    from folio.expiration import ExpirationConfig, create_scheduler

    store = FileStore(PathResolver("/srv/uploads"))

    # Caller-chosen paths; ".." and absolute anchors never leave the root
    path = store.resolver.resolve("reports/2024/summary.txt")
    store.create(path, b"hello")

    # Anonymous uploads under generated ids, deleted after an hour
    scheduler = create_scheduler(ExpirationConfig(), store)
    coordinator = UploadCoordinator(store, IdGenerator(), scheduler)
    receipt = await coordinator.upload(b"hello", extension="txt", ttl=timedelta(hours=1))
    print(receipt.path)  # /files/3fQx9aZk.txt

    # HTTP service
    from folio.api import create_app
    app = create_app()
"""

from importlib.metadata import PackageNotFoundError, version

from .errors import (
    AlreadyExistsError,
    FolioError,
    InvalidDurationError,
    IOFailureError,
    NotAFileError,
    NotFoundError,
    PathInvalidError,
    PayloadTooLargeError,
    SchedulerDispatchError,
    UploadIdExhaustedError,
)
from .ids import BASE62, IdGenerator, UploadId
from .paths import PathResolver, RelativePath
from .store import FileStore, WriteOutcome
from .uploads import UploadCoordinator, UploadReceipt

try:
    __version__ = version("folio")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "BASE62",
    "AlreadyExistsError",
    "FileStore",
    "FolioError",
    "IOFailureError",
    "IdGenerator",
    "InvalidDurationError",
    "NotAFileError",
    "NotFoundError",
    "PathInvalidError",
    "PathResolver",
    "PayloadTooLargeError",
    "RelativePath",
    "SchedulerDispatchError",
    "UploadCoordinator",
    "UploadId",
    "UploadIdExhaustedError",
    "UploadReceipt",
    "WriteOutcome",
    "__version__",
]
