"""Exception hierarchy for the SmartDocs backend.

Each error carries the HTTP status it is reported with; the handlers in
``main`` turn them into ``{"error": message}`` responses.
"""

from pathlib import Path
from typing import Optional


class SmartDocsError(Exception):
    """Base class for all errors raised by the service layer."""

    status_code = 500
    public_message = None

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def response_message(self) -> str:
        return self.public_message or self.message


class ValidationError(SmartDocsError):
    """Missing or invalid create-project input."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(SmartDocsError):
    """No project with the requested id."""

    status_code = 404


class StorageError(SmartDocsError):
    """Filesystem failure while provisioning or removing project storage."""

    status_code = 500
    public_message = "Storage operation failed"

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)
