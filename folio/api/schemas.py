"""Response bodies of the HTTP surface."""

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Outcome message for file operations and errors."""

    message: str


class UploadResponse(BaseModel):
    """Outcome of an anonymous upload."""

    message: str
    path: str
