"""Duration parsing for expiry requests.

Accepts compact duration strings such as ``168h``, ``1h30m`` or ``1.5s``,
plus ``d`` and ``w`` units and bare numbers of seconds.
"""

import re
from datetime import timedelta

from .errors import InvalidDurationError

_UNITS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
    "w": 604800.0,
}

# Longest unit names first so "ms" wins over "m"
_COMPONENT = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h|d|w)")
_BARE_NUMBER = re.compile(r"^\d+(?:\.\d+)?$")


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration string into a timedelta.

    Args:
        text: Duration like "168h", "1h30m", "500ms" or "90" (seconds)

    Returns:
        Positive timedelta

    Raises:
        InvalidDurationError: Empty, malformed, non-positive or unrepresentable
            duration
    """
    value = text.strip()
    if not value:
        raise InvalidDurationError(text, "empty duration")

    if _BARE_NUMBER.match(value):
        seconds = float(value)
    else:
        seconds = 0.0
        position = 0
        for match in _COMPONENT.finditer(value):
            if match.start() != position:
                raise InvalidDurationError(text)
            seconds += float(match.group(1)) * _UNITS[match.group(2)]
            position = match.end()
        if position != len(value):
            raise InvalidDurationError(text)

    if seconds <= 0:
        raise InvalidDurationError(text, "duration must be positive")
    try:
        return timedelta(seconds=seconds)
    except OverflowError as e:
        raise InvalidDurationError(text, "duration too large") from e


def format_duration(duration: timedelta) -> str:
    """Render a timedelta in the same compact syntax (e.g. "1h30m")."""
    total_ms = round(duration.total_seconds() * 1000)
    if total_ms == 0:
        return "0s"

    parts = []
    for unit, size in (("h", 3_600_000), ("m", 60_000), ("s", 1000)):
        count, total_ms = divmod(total_ms, size)
        if count:
            parts.append(f"{count}{unit}")
    if total_ms:
        parts.append(f"{total_ms}ms")
    return "".join(parts)
