from __future__ import annotations


class RecordbookError(Exception):
    """Base class for failures the transport layer translates for callers."""

    status_code = 500

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class NotFoundError(RecordbookError):
    status_code = 404


class ConflictError(RecordbookError):
    status_code = 409


class ValidationError(RecordbookError):
    status_code = 400


class ForbiddenError(RecordbookError):
    status_code = 403
