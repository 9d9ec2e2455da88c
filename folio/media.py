"""Mapping from uploaded content metadata to file extensions."""

import mimetypes
import re
from pathlib import PurePosixPath

from .types import EXTENSION_PATTERN

# Preferred extensions where the platform mime database is ambiguous
_PREFERRED = {
    "text/plain": "txt",
    "text/html": "html",
    "text/css": "css",
    "text/csv": "csv",
    "text/markdown": "md",
    "text/javascript": "js",
    "application/javascript": "js",
    "application/json": "json",
    "application/pdf": "pdf",
    "application/zip": "zip",
    "application/gzip": "gz",
    "application/x-tar": "tar",
    "application/xml": "xml",
    "application/wasm": "wasm",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "image/x-icon": "ico",
    "audio/mpeg": "mp3",
    "audio/ogg": "ogg",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "font/woff": "woff",
    "font/woff2": "woff2",
}

# Content types that carry no extension information
_GENERIC = {"application/octet-stream", "multipart/form-data"}

_EXTENSION = re.compile(EXTENSION_PATTERN)


def extension_for_content_type(content_type: str | None) -> str | None:
    """Return the extension for a media type, ignoring parameters."""
    if not content_type:
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    if not media_type or media_type in _GENERIC:
        return None
    if media_type in _PREFERRED:
        return _PREFERRED[media_type]
    guessed = mimetypes.guess_extension(media_type)
    return guessed.lstrip(".") if guessed else None


def extension_for_filename(filename: str | None) -> str | None:
    """Return all suffixes of a client file name (``a.tar.gz`` -> ``tar.gz``)."""
    if not filename:
        return None
    suffixes = "".join(PurePosixPath(filename.replace("\\", "/")).suffixes)
    extension = suffixes.lstrip(".")
    if not extension or not _EXTENSION.match(extension):
        return None
    return extension


def extension_for_upload(
    content_type: str | None, filename: str | None = None
) -> str | None:
    """Pick the extension for an upload: content type first, then file name."""
    return extension_for_content_type(content_type) or extension_for_filename(
        filename
    )
