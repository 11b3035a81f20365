from enum import Enum


class ActivityCode(str, Enum):
    # ---------------- AUTH ----------------
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"

    # ---------------- QUOTATIONS ----------------
    CREATE_QUOTATION = "CREATE_QUOTATION"
    UPDATE_QUOTATION = "UPDATE_QUOTATION"
    APPROVE_QUOTATION = "APPROVE_QUOTATION"
    REJECT_QUOTATION = "REJECT_QUOTATION"
    REQUEST_REVISE_QUOTATION = "REQUEST_REVISE_QUOTATION"
    REVISE_QUOTATION = "REVISE_QUOTATION"
    CANCEL_QUOTATION = "CANCEL_QUOTATION"
    DELETE_QUOTATION = "DELETE_QUOTATION"
    CLIENT_DECISION = "CLIENT_DECISION"
    SUBMIT_PURCHASE_ORDER = "SUBMIT_PURCHASE_ORDER"
    RENDER_QUOTATION_PDF = "RENDER_QUOTATION_PDF"

    # ---------------- QUOTATION REQUESTS ----------------
    CREATE_QUOTATION_REQUEST = "CREATE_QUOTATION_REQUEST"
    REJECT_QUOTATION_REQUEST = "REJECT_QUOTATION_REQUEST"

    # ---------------- ACCESS CONTROL ----------------
    UPDATE_FEATURES = "UPDATE_FEATURES"
    CREATE_ROLE = "CREATE_ROLE"
    DELETE_ROLE = "DELETE_ROLE"
