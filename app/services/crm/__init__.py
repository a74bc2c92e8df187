"""CRM customer engagement services.

Submodule Structure:
    crm/
    ├── customers.py       - Customer records, find-or-create by contact identity
    ├── activities.py      - Append-only customer activity log
    ├── inquiries.py       - Inquiry / PropertyInquiry CRUD, manual inquiry status
    ├── deal_status.py     - PropertyInquiry deal-status state machine
    ├── reconciliation.py  - Inquiry status derivation and assignee propagation
    ├── inbound.py         - Inbound/outbound channel intake
    ├── unread.py          - Per-user unread tracking (read watermarks)
    ├── permissions.py     - Targeting and authorization rules
    ├── observability.py   - Prometheus metrics
    └── errors.py          - Error taxonomy
"""
