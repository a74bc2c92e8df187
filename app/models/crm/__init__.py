from app.models.crm.activity import CustomerActivity
from app.models.crm.customer import Customer
from app.models.crm.enums import (
    ActivityDirection,
    ActivityType,
    CustomerStatus,
    DealStatus,
    InquiryPriority,
    InquiryStatus,
    MediaType,
    OriginType,
)
from app.models.crm.inquiry import Inquiry, PropertyInquiry
from app.models.crm.read_status import InquiryReadStatus

__all__ = [
    "ActivityDirection",
    "ActivityType",
    "Customer",
    "CustomerActivity",
    "CustomerStatus",
    "DealStatus",
    "Inquiry",
    "InquiryPriority",
    "InquiryReadStatus",
    "InquiryStatus",
    "MediaType",
    "OriginType",
    "PropertyInquiry",
]
