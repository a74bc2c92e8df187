from app.models.crm import (  # noqa: F401
    ActivityDirection,
    ActivityType,
    Customer,
    CustomerActivity,
    CustomerStatus,
    DealStatus,
    Inquiry,
    InquiryPriority,
    InquiryReadStatus,
    InquiryStatus,
    MediaType,
    OriginType,
    PropertyInquiry,
)
from app.models.tenant import Tenant, User, UserRole  # noqa: F401
