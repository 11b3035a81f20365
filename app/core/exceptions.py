from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


class PermissionDenied(AppException):
    def __init__(self, feature_id: str, role: str | None, message: str | None = None):
        super().__init__(
            403,
            message or f"Permission denied for feature '{feature_id}' (role: {role})",
            ErrorCode.PERMISSION_DENIED,
            {"feature_id": feature_id, "role": role},
        )
        self.feature_id = feature_id
        self.role = role


class InvalidStateTransition(AppException):
    def __init__(self, current: str | None, attempted: str, message: str | None = None):
        super().__init__(
            409,
            message or f"Cannot move from '{current}' to '{attempted}'",
            ErrorCode.QUOTATION_INVALID_STATE,
            {"current": current, "attempted": attempted},
        )
        self.current = current
        self.attempted = attempted


class NotFound(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        entity_id: str | int | None = None,
    ):
        super().__init__(404, message, error_code, {"id": entity_id})


class PartialRevisionFailure(AppException):
    """Parent was closed as revised but its successor could not be created."""

    def __init__(self, parent_id: str, child_id: str, child_number: str, reason: str):
        super().__init__(
            500,
            (
                f"Quotation {parent_id} was marked revised but revision "
                f"{child_number} ({child_id}) could not be created: {reason}"
            ),
            ErrorCode.REVISION_PARTIAL_FAILURE,
            {
                "parent_id": parent_id,
                "child_id": child_id,
                "child_number": child_number,
                "reason": reason,
            },
        )
        self.parent_id = parent_id
        self.child_id = child_id
        self.child_number = child_number


class MalformedInput(AppException):
    def __init__(self, reason: str):
        super().__init__(400, reason, ErrorCode.MALFORMED_INPUT, {"reason": reason})
