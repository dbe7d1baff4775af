"""Error taxonomy shared by services and the HTTP layer.

Each RegdeskError subclass carries the HTTP status it maps to; the handlers
registered in regdesk.api.main render them into the response envelope.
"""


class RegdeskError(Exception):
    """Base class for errors that are reported back to the caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RegdeskError):
    """Bad input shape or an invalid enumerated value."""

    status_code = 400


class UnauthorizedError(RegdeskError):
    """Caller is unauthenticated or not on the admin allow-list."""

    status_code = 401


class ForbiddenError(RegdeskError):
    """Operation is switched off by configuration."""

    status_code = 403


class NotFoundError(RegdeskError):
    status_code = 404


class SheetsNotConfiguredError(RuntimeError):
    """Raised when Google Sheets credentials or the sheet id are missing."""
