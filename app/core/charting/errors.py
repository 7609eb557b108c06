from __future__ import annotations


class ChartingError(Exception):
    pass


class UnsupportedResolution(ChartingError, ValueError):
    """Raised when a resolution is unknown or not supported by the operation."""

    def __init__(self, resolution: object, message: str | None = None) -> None:
        self.resolution = resolution
        super().__init__(message or f"Resolution {resolution!r} is not supported")


class PreconditionViolation(ChartingError, ValueError):
    pass
