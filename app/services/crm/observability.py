"""Prometheus metrics for the CRM engagement pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

DEAL_STATUS_CHANGES = Counter(
    "crm_deal_status_changes_total",
    "Deal status transitions applied to property inquiries",
    ["from_status", "to_status"],
)

INQUIRY_RECONCILIATIONS = Counter(
    "crm_inquiry_reconciliations_total",
    "Inquiry status changes derived from property inquiry state",
    ["to_status"],
)

ASSIGNEE_PROPAGATIONS = Counter(
    "crm_inquiry_assignee_propagations_total",
    "Inquiry primary owners defaulted from a property inquiry assignee",
)

INBOUND_CONTACTS = Counter(
    "crm_inbound_contacts_total",
    "Inbound contacts recorded",
    ["channel", "status"],  # status: new_customer, existing_customer, error
)

READ_MARKS = Counter(
    "crm_inquiry_read_marks_total",
    "Inquiry read watermarks written",
    ["mode"],  # mode: single, bulk
)

UNREAD_QUERY_TIME = Histogram(
    "crm_unread_query_seconds",
    "Time spent answering unread queries",
    ["operation"],
)
