from fastapi import APIRouter

from app.api.crm.customers import router as customers_router
from app.api.crm.inbound import router as inbound_router
from app.api.crm.inquiries import router as inquiries_router
from app.api.crm.property_inquiries import router as property_inquiries_router
from app.api.crm.unread_notifications import router as unread_notifications_router

router = APIRouter(tags=["crm"])
router.include_router(customers_router)
router.include_router(inquiries_router)
router.include_router(property_inquiries_router)
router.include_router(inbound_router)
router.include_router(unread_notifications_router)

__all__ = ["router"]
