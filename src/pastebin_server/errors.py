from __future__ import annotations


class ClipboardError(Exception):
    """Base error surfaced by the clipboard stores and the HTTP layer."""

    status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(ClipboardError):
    status = 400


class NotFoundError(ClipboardError):
    status = 404


class RequestTimeoutError(ClipboardError):
    status = 408


class PayloadTooLargeError(ClipboardError):
    status = 413


class InvalidPayloadError(ClipboardError):
    status = 422
