"""Error taxonomy shared by the data service, the storage backends and the API."""

from __future__ import annotations


class PTrackerError(Exception):
    """Base error. Carries the HTTP status the API answers with."""

    status_code: int = 500
    code: str = "internal_error"
    default_detail: str = "Internal error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(PTrackerError):
    """Malformed or out-of-range input."""

    status_code = 400
    code = "validation_error"
    default_detail = "Validation error"


class ForbiddenError(PTrackerError):
    """The caller does not hold the capability the operation requires."""

    status_code = 403
    code = "forbidden"
    default_detail = "Administrator access required"


class NotFoundError(PTrackerError):
    status_code = 404
    code = "not_found"
    default_detail = "Resource not found"


class SeasonInactiveError(PTrackerError):
    """Submission attempted while the season is closed."""

    status_code = 409
    code = "season_inactive"
    default_detail = "The season is not active, submissions are closed"


class BackendUnavailableError(PTrackerError):
    """Transport or storage failure. The core never retries these."""

    status_code = 503
    code = "backend_unavailable"
    default_detail = "Storage backend unavailable"
