"""Common annotated types for field validation.

These types provide consistent validation patterns across the service.
"""

from typing import Annotated

from pydantic import Field

# Characters an upload id may contain (base62)
UPLOAD_ID_PATTERN = r"^[0-9A-Za-z]+$"

# File extensions: may contain dots (e.g. "tar.gz"), never separators
EXTENSION_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9+_.-]*$"

# Activity names - alphanumeric, underscore, hyphen
IDENTIFIER_PATTERN = r"^[a-zA-Z0-9_-]+$"


# Upload id - fixed length token drawn from the base62 alphabet
UploadIdStr = Annotated[str, Field(min_length=1, pattern=UPLOAD_ID_PATTERN)]

# Extension appended to an upload id
Extension = Annotated[str, Field(min_length=1, max_length=32, pattern=EXTENSION_PATTERN)]

# Activity name registered with the expiration scheduler
ActivityName = Annotated[str, Field(min_length=1, pattern=IDENTIFIER_PATTERN)]
