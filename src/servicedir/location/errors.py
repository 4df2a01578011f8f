"""
Location failure taxonomy.

Every failure of the location resolver is a `LocationError` carrying a stable
`kind` string. All of them are recoverable at the call site: the caller simply
continues without a user coordinate.
"""

from __future__ import annotations

# Platform error codes (same numbering as the browser Geolocation API).
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3


class PositionError(Exception):
    """Raised by a geolocation provider; `code` uses the platform numbering above."""

    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"position error {code}")
        self.code = code
        self.message = message


class LocationError(Exception):
    kind = "unknown"
    default_message = "Location error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def as_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class LocationUnsupportedError(LocationError):
    kind = "unsupported"
    default_message = "Geolocation is not supported by this client."


class LocationPermissionDeniedError(LocationError):
    kind = "permission_denied"
    default_message = "Location access denied. Please enable location permissions for this site."


class LocationUnavailableError(LocationError):
    kind = "position_unavailable"
    default_message = "Location information unavailable. Check your GPS/network connection."


class LocationTimeoutError(LocationError):
    kind = "timeout"
    default_message = "Location request timed out. Please try again."


class LocationUnknownError(LocationError):
    kind = "unknown"

    def __init__(self, message: str | None = None):
        super().__init__(f"Location error: {message}" if message else None)


def error_from_position_error(exc: PositionError) -> LocationError:
    """Map a provider's platform error onto the resolver taxonomy."""
    if exc.code == PERMISSION_DENIED:
        return LocationPermissionDeniedError()
    if exc.code == POSITION_UNAVAILABLE:
        return LocationUnavailableError()
    if exc.code == TIMEOUT:
        return LocationTimeoutError()
    return LocationUnknownError(exc.message)
