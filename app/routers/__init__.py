# app/routers/__init__.py

from .auth.auth_router import router as auth_router
from .auth.activity_router import router as activity_router

from .access.feature_router import feature_router, role_router

from .quotations.quotation_router import router as quotation_router
from .quotations.quotation_request_router import router as quotation_request_router


__all__ = [
"auth_router",
"activity_router",

"feature_router",
"role_router",

"quotation_router",
"quotation_request_router",
]
