from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MALFORMED_INPUT = "MALFORMED_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # ---------------- QUOTATIONS ----------------
    QUOTATION_NOT_FOUND = "QUOTATION_NOT_FOUND"
    QUOTATION_INVALID_STATE = "QUOTATION_INVALID_STATE"
    REVISION_PARTIAL_FAILURE = "REVISION_PARTIAL_FAILURE"

    # ---------------- QUOTATION REQUESTS ----------------
    QUOTATION_REQUEST_NOT_FOUND = "QUOTATION_REQUEST_NOT_FOUND"
    QUOTATION_REQUEST_INVALID_STATE = "QUOTATION_REQUEST_INVALID_STATE"

    # ---------------- FEATURES / ROLES ----------------
    FEATURE_INVALID = "FEATURE_INVALID"
    ROLE_NOT_FOUND = "ROLE_NOT_FOUND"
    ROLE_EXISTS = "ROLE_EXISTS"
    ROLE_PROTECTED = "ROLE_PROTECTED"
