"""Error types shared by the file store, uploads and HTTP layer."""


class FolioError(Exception):
    """Base class for folio errors."""


class PathInvalidError(FolioError):
    """Path is malformed or tries to escape the storage root."""

    def __init__(self, path: str, reason: str = "invalid path"):
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason


class AlreadyExistsError(FolioError):
    """A file already exists at the target path."""

    def __init__(self, path: str):
        super().__init__(f"file already exists: {path}")
        self.path = path


class NotFoundError(FolioError):
    """No file exists at the target path."""

    def __init__(self, path: str):
        super().__init__(f"file not found: {path}")
        self.path = path


class NotAFileError(FolioError):
    """Target path exists but is not a regular file."""

    def __init__(self, path: str):
        super().__init__(f"path is not a file: {path}")
        self.path = path


class IOFailureError(FolioError):
    """Filesystem operation failed."""

    def __init__(self, message: str, cause: OSError | None = None):
        super().__init__(message)
        self.cause = cause


class UploadIdExhaustedError(FolioError):
    """No free upload id was found within the attempt bound."""

    def __init__(self, attempts: int):
        super().__init__(f"no free upload id after {attempts} attempts")
        self.attempts = attempts


class PayloadTooLargeError(FolioError):
    """Uploaded content exceeds the configured size limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"file too large: {size} bytes (limit {limit} bytes)")
        self.size = size
        self.limit = limit


class InvalidDurationError(FolioError):
    """Duration string could not be parsed."""

    def __init__(self, text: str, reason: str = "invalid duration"):
        super().__init__(f"{reason}: {text!r}")
        self.text = text


class SchedulerDispatchError(FolioError):
    """Expiration task could not be durably registered."""
