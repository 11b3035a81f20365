#users and auth
from app.models.users.user_models import User
from app.models.support.activity_models import UserActivity

# Access control
from app.models.access.feature_models import Feature, Role

# Quotations
from app.models.quotations.quotation_request_models import QuotationRequest, QuotationRequestActionHistory
from app.models.quotations.quotation_models import (
    Quotation,
    QuotationItem,
    QuotationTerm,
    QuotationActionHistory,
)
