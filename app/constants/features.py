# Feature ids checked by the services. The allowed roles below are only the
# seed values written by app/scripts/seed_features.py; at runtime the
# features table is the source of truth.

# ---------------- INTERNAL ----------------
CREATE_QUOTATIONS = "create_quotations"
EDIT_QUOTATIONS = "edit_quotations"
APPROVE_QUOTATIONS = "approve_quotations"
CANCEL_QUOTATIONS = "cancel_quotations"
UPDATE_CLIENT_STATUS = "update_client_status"
VIEW_QUOTATION_REQUESTS = "view_quotation_requests"
VIEW_OWN_QUOTATIONS_ONLY = "view_own_quotations_only"
VIEW_DEPARTMENT_DATA = "view_department_data"
VIEW_QUOTATION_ANALYTICS = "view_quotation_analytics"
VIEW_ACTIVITY_LOG = "view_activity_log"
MANAGE_FEATURES = "manage_features"
MANAGE_ROLES = "manage_roles"

# ---------------- EXTERNAL ----------------
EXT_APPROVE_QUOTATIONS = "approve_quotations"
EXT_REQUEST_QUOTATIONS = "request_quotations"

ADMIN_ROLE = "admin"
DEFAULT_EXTERNAL_ROLE = "ext_client"
EXTERNAL_ROLE_PREFIX = "ext_"


DEFAULT_INTERNAL_ROLES = [
    {"id": "admin", "name": "Admin", "description": "Full system access"},
    {"id": "manager", "name": "Manager", "description": "Team management access"},
    {"id": "sales_engineer", "name": "Sales Engineer", "description": "Technical sales support"},
    {"id": "sales", "name": "Sales", "description": "Sales operations"},
]

DEFAULT_EXTERNAL_ROLES = [
    {"id": "ext_client", "name": "Client", "description": "Client user"},
    {"id": "ext_manager", "name": "Client Manager", "description": "Client user who can decide on quotations"},
]

DEFAULT_INTERNAL_FEATURES = [
    {
        "id": CREATE_QUOTATIONS,
        "name": "Create quotations",
        "description": "Create new quotations and render their PDF",
        "allowed_roles": ["admin", "manager", "sales_engineer", "sales"],
    },
    {
        "id": EDIT_QUOTATIONS,
        "name": "Edit quotations",
        "description": "Edit pending quotations",
        "allowed_roles": ["admin", "manager", "sales_engineer"],
    },
    {
        "id": APPROVE_QUOTATIONS,
        "name": "Approve quotations",
        "description": "Approve, reject, request revision and revise quotations",
        "allowed_roles": ["admin", "manager"],
    },
    {
        "id": CANCEL_QUOTATIONS,
        "name": "Cancel quotations",
        "description": "Cancel pending or approved quotations",
        "allowed_roles": ["admin", "manager"],
    },
    {
        "id": UPDATE_CLIENT_STATUS,
        "name": "Update client status",
        "description": "Record the client's decision on an approved quotation",
        "allowed_roles": ["admin", "manager"],
    },
    {
        "id": VIEW_QUOTATION_REQUESTS,
        "name": "View quotation requests",
        "description": "See quotation requests sent by clients",
        "allowed_roles": ["admin", "manager", "sales_engineer", "sales"],
    },
    {
        "id": VIEW_OWN_QUOTATIONS_ONLY,
        "name": "View own quotations only",
        "description": "Restrict listings to quotations created by the user",
        "allowed_roles": [],
    },
    {
        "id": VIEW_DEPARTMENT_DATA,
        "name": "View department data",
        "description": "Restrict listings to the user's department",
        "allowed_roles": ["sales"],
    },
    {
        "id": VIEW_QUOTATION_ANALYTICS,
        "name": "View quotation analytics",
        "description": "See quotation statistics",
        "allowed_roles": ["admin", "manager"],
    },
    {
        "id": VIEW_ACTIVITY_LOG,
        "name": "View activity log",
        "description": "See the user activity audit log",
        "allowed_roles": ["admin"],
    },
    {
        "id": MANAGE_FEATURES,
        "name": "Manage features",
        "description": "Change which roles may use which feature",
        "allowed_roles": ["admin"],
    },
    {
        "id": MANAGE_ROLES,
        "name": "Manage roles",
        "description": "Create and delete roles",
        "allowed_roles": ["admin"],
    },
]

DEFAULT_EXTERNAL_FEATURES = [
    {
        "id": EXT_APPROVE_QUOTATIONS,
        "name": "Approve quotations",
        "description": "Approve, reject or ask for revision of quotations and submit POs",
        "allowed_roles": ["ext_manager"],
    },
    {
        "id": EXT_REQUEST_QUOTATIONS,
        "name": "Request quotations",
        "description": "Send quotation requests",
        "allowed_roles": ["ext_client", "ext_manager"],
    },
]
