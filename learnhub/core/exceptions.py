"""Domain errors raised by the crud layer and rendered by the API."""


class LearnHubError(Exception):
    """Base error carrying a human-readable message and a machine-readable kind."""

    kind = "error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.kind
        super().__init__(message)


class AuthorizationDeniedError(LearnHubError):
    kind = "authorization_denied"
    status_code = 403


class NotFoundError(LearnHubError):
    kind = "not_found"
    status_code = 404


class ConflictError(LearnHubError):
    kind = "conflict"
    status_code = 409


class ValidationFailedError(LearnHubError):
    kind = "validation"
    status_code = 400


class PersistenceError(LearnHubError):
    kind = "persistence"
    status_code = 503
    retryable = True


class StorageUnavailableError(PersistenceError):
    def __init__(self, message: str = "File storage is not available") -> None:
        super().__init__(message, code="storage_unavailable")


class NotEnrolledError(AuthorizationDeniedError):
    def __init__(self, message: str = "You are not enrolled in this course") -> None:
        super().__init__(message, code="not_enrolled")


class AlreadyEnrolledError(ConflictError):
    def __init__(self, message: str = "Already enrolled in this course") -> None:
        super().__init__(message, code="already_enrolled")


class CourseNotCompletedError(ValidationFailedError):
    def __init__(self, message: str = "Course not completed yet") -> None:
        super().__init__(message, code="course_not_completed")


class CertificateAlreadyIssuedError(ConflictError):
    def __init__(self, message: str = "Certificate already issued for this course") -> None:
        super().__init__(message, code="certificate_already_issued")


class AttemptLimitReachedError(ConflictError):
    def __init__(self, message: str = "Maximum attempts reached") -> None:
        super().__init__(message, code="attempt_limit_reached")


class AttemptClosedError(AuthorizationDeniedError):
    def __init__(self, message: str = "Attempt already completed") -> None:
        super().__init__(message, code="attempt_closed")


class DuplicateSubmissionError(ConflictError):
    def __init__(self, message: str = "Assignment already submitted") -> None:
        super().__init__(message, code="duplicate_submission")


class GradeOutOfRangeError(ValidationFailedError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="grade_out_of_range")
