"""Domain exceptions raised by the service layer.

Each exception carries a ``detail`` string (and an HTTP status) so the handlers
registered in ``app.main`` can render it without the services knowing about
HTTP.
"""
from typing import Dict, Optional


class AppException(Exception):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class UnauthorizedException(AppException):
    status_code = 401
    default_detail = "Not authenticated"


class ForbiddenException(AppException):
    status_code = 403
    default_detail = "Forbidden"


class OwnershipMismatchException(ForbiddenException):
    """A therapist tried to read or mutate another therapist's record."""

    default_detail = "You do not own this resource"


class NotFoundException(AppException):
    status_code = 404
    default_detail = "Not found"


# Shared by unknown, revoked and deactivated share tokens
PUBLIC_NOT_FOUND_DETAIL = "Assessment not found or no longer available"


class InactiveAssessmentException(NotFoundException):
    """Public access to a deactivated or token-revoked assessment.

    Renders exactly like a missing assessment so anonymous callers cannot tell
    the two apart.
    """

    default_detail = PUBLIC_NOT_FOUND_DETAIL


class ValidationException(AppException):
    status_code = 400
    default_detail = "Validation failed"

    def __init__(self, detail: Optional[str] = None, errors: Optional[Dict[str, str]] = None):
        super().__init__(detail)
        # keyed by assessment_question_id (or field name) -> message
        self.errors = errors or {}


class ConflictException(AppException):
    status_code = 409
    default_detail = "Conflict"


class DuplicateSubmissionException(ConflictException):
    default_detail = "This assessment does not allow multiple submissions"


class PersistenceFailure(AppException):
    """The store rejected a write. Carries the rollback error too when that also failed."""

    status_code = 500
    default_detail = "Failed to persist changes"

    def __init__(
        self,
        detail: Optional[str] = None,
        original: Optional[BaseException] = None,
        rollback_error: Optional[BaseException] = None,
    ):
        message = detail or self.default_detail
        if original is not None:
            message = f"{message}: {original}"
        if rollback_error is not None:
            message = f"{message}; rollback also failed: {rollback_error}"
        super().__init__(message)
        self.original = original
        self.rollback_error = rollback_error
