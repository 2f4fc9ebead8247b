"""Domain exceptions raised by services and translated to HTTP by the error handler."""

from __future__ import annotations


class StudyHubError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidInput(StudyHubError):
    """Request data failed a domain precondition."""

    status_code = 400
    default_detail = "Invalid input"


class NotFound(StudyHubError):
    """Referenced record does not exist."""

    status_code = 404
    default_detail = "Not found"


class Forbidden(StudyHubError):
    """Caller is not allowed to act on the record."""

    status_code = 403
    default_detail = "Forbidden"


class ConcurrentUpdate(StudyHubError):
    """Another request modified the same record first."""

    status_code = 409
    default_detail = "Record was modified concurrently, retry the request"


class StorageError(StudyHubError):
    """The storage layer failed (connectivity, timeout, driver error). Never retried."""

    status_code = 503
    default_detail = "Storage unavailable"
