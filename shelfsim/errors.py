"""Domain exceptions.  Each carries the HTTP status the web layer maps it to."""

from __future__ import annotations


class ShelfSimError(Exception):
    """Base class for all shelfsim errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ShelfSimError):
    status_code = 404


class PermissionDeniedError(ShelfSimError):
    status_code = 403


class InvalidConfigurationError(ShelfSimError):
    """Bad price levels, empty shelves, invalid price ranges."""

    status_code = 400


class InvalidAnswerError(ShelfSimError):
    """An answer does not fit its question's answer type or options."""

    status_code = 400


class UploadError(ShelfSimError):
    status_code = 400


class AIResponseError(ShelfSimError):
    """The model replied with something we cannot use, or the call failed."""

    status_code = 502


class ScreenshotError(ShelfSimError):
    """The headless browser could not render the page."""

    status_code = 502
