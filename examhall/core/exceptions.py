from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class ExamServiceError(HTTPException):
    """Base error for every failure the exam service reports to callers.

    ``kind`` is the stable, machine-readable error name surfaced in the
    error envelope; ``details`` carries structured context such as publish
    check reasons or the offending CSV row.
    """
    kind: str = "ExamServiceError"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed."

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None,
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message, headers=headers)
        self.message = message or self.default_message
        self.details = details


class NotAuthenticated(ExamServiceError):
    kind = "NotAuthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials."

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(ExamServiceError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action."


class NotFound(ExamServiceError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class ExamNotPublished(ExamServiceError):
    kind = "ExamNotPublished"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Exam is not published."


class AttemptLimitExceeded(ExamServiceError):
    kind = "AttemptLimitExceeded"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Maximum number of attempts reached for this exam."


class AttemptAlreadySubmitted(ExamServiceError):
    kind = "AttemptAlreadySubmitted"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Attempt has already been submitted."


class AttemptExpired(ExamServiceError):
    kind = "AttemptExpired"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Attempt time has expired."


class AttemptNotSubmitted(ExamServiceError):
    kind = "AttemptNotSubmitted"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Attempt has not been submitted yet."


class ValidationFailed(ExamServiceError):
    kind = "ValidationFailed"
    status_code = 422
    default_message = "Validation failed."


class ImportParseError(ExamServiceError):
    kind = "ImportParseError"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Could not parse import file."
