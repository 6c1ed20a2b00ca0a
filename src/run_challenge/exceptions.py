"""
Error hierarchy for the running challenge service.

Every ChallengeError knows its API error code and HTTP status; subclasses
set both as class attributes so raising one needs only a message (or the
ids it is about). The API layer renders them as
``{"error": {"code", "message", "details"}}``.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable codes returned in the error envelope."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    USER_NOT_FOUND = "USER_NOT_FOUND"
    PROFILE_INCOMPLETE = "PROFILE_INCOMPLETE"
    BAILOUT_NOT_RECORDED = "BAILOUT_NOT_RECORDED"

    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_UNAUTHORIZED = "PROVIDER_UNAUTHORIZED"
    PROVIDER_RATE_LIMITED = "PROVIDER_RATE_LIMITED"
    PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"

    DATABASE_ERROR = "DATABASE_ERROR"


class ChallengeError(Exception):
    """Base for every error the API turns into a JSON error envelope."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value}: {self.message!r})"


class ValidationError(ChallengeError):
    """Missing or malformed request input; ``field`` names the culprit."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details=details)
        if field:
            self.details["field"] = field


class ProfileIncompleteError(ChallengeError):
    """A page needs age, sex and baseline pace and the user has not set them."""

    code = ErrorCode.PROFILE_INCOMPLETE
    status_code = 409

    def __init__(self, user_id: int) -> None:
        super().__init__(
            "Complete your profile (age, sex, baseline pace) first",
            details={"user_id": user_id},
        )


class UserNotFoundError(ChallengeError):
    code = ErrorCode.USER_NOT_FOUND
    status_code = 404

    def __init__(self, user_id: Any) -> None:
        super().__init__(
            f"User with ID '{user_id}' not found",
            details={"resource_type": "User", "resource_id": str(user_id)},
        )


class ProviderError(ChallengeError):
    """
    Strava could not be used: bad or expired credentials, throttling, or
    a body that is not an activity list.
    """

    code = ErrorCode.PROVIDER_ERROR
    status_code = 502

    def __init__(
        self,
        message: str = "Activity provider returned an error",
        code: Optional[ErrorCode] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, status_code, details)


class ProviderNotConfiguredError(ProviderError):
    code = ErrorCode.PROVIDER_NOT_CONFIGURED
    status_code = 501

    def __init__(self) -> None:
        super().__init__("Strava OAuth not configured. Set STRAVA_CLIENT_ID and STRAVA_CLIENT_SECRET.")


class DatabaseError(ChallengeError):
    code = ErrorCode.DATABASE_ERROR

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details)
        if operation:
            self.details["operation"] = operation


class BailoutRecordError(DatabaseError):
    """
    The pass was decremented but the BAILOUT day could not be written.

    The two writes are separate statements, so the pass stays spent.
    """

    code = ErrorCode.BAILOUT_NOT_RECORDED

    def __init__(self, user_id: int, day: str, cause: str) -> None:
        super().__init__(
            "Bailout pass was used but the day could not be marked as bailout",
            operation="upsert_progress",
            details={"user_id": user_id, "date": day, "pass_spent": True, "cause": cause},
        )
