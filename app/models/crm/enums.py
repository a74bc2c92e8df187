import enum


class CustomerStatus(enum.Enum):
    active = "active"
    archived = "archived"


class InquiryStatus(enum.Enum):
    active = "active"
    on_hold = "on_hold"
    closed = "closed"


class DealStatus(enum.Enum):
    new_inquiry = "new_inquiry"
    contacting = "contacting"
    viewing_scheduled = "viewing_scheduled"
    viewing_done = "viewing_done"
    application = "application"
    contracted = "contracted"
    lost = "lost"


class InquiryPriority(enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class MediaType(enum.Enum):
    suumo = "suumo"
    athome = "athome"
    homes = "homes"
    own_website = "own_website"
    email = "email"
    line = "line"
    phone = "phone"
    walk_in = "walk_in"
    referral = "referral"
    other_media = "other_media"


class OriginType(enum.Enum):
    document_request = "document_request"
    viewing_request = "viewing_request"
    general_inquiry = "general_inquiry"
    staff_proposal = "staff_proposal"
    other_origin = "other_origin"


class ActivityType(enum.Enum):
    note = "note"
    phone_call = "phone_call"
    email = "email"
    visit = "visit"
    viewing = "viewing"
    inquiry = "inquiry"
    access_issued = "access_issued"
    status_change = "status_change"
    line_message = "line_message"
    assigned_user_change = "assigned_user_change"
    portal_viewed = "portal_viewed"
    ai_simulation = "ai_simulation"
    ai_grounding = "ai_grounding"
    customer_route_created = "customer_route_created"
    access_revoked = "access_revoked"
    access_extended = "access_extended"
    inquiry_replied = "inquiry_replied"
    customer_merged = "customer_merged"


class ActivityDirection(enum.Enum):
    internal = "internal"
    outbound = "outbound"
    inbound = "inbound"
