"""Query and coercion helpers shared by service classes."""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from app.services.crm.errors import NotFoundError, ValidationError


def now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps (SQLite returns them without tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def coerce_uuid(value, field: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        # Unparseable ids cannot match a row.
        raise NotFoundError("not_found", f"Unknown {field}: {value}") from None


def validate_enum(value, enum_cls: type[enum.Enum], field: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value))
    except ValueError:
        allowed = ", ".join(item.value for item in enum_cls)
        raise ValidationError(
            f"invalid_{field}",
            f"Invalid {field}: {value}. Allowed values: {allowed}",
        ) from None


def apply_ordering(query, order_by: str, order_dir: str, allowed_columns: dict):
    if order_by not in allowed_columns:
        allowed = ", ".join(sorted(allowed_columns))
        raise ValidationError("invalid_order_by", f"Invalid order_by. Allowed: {allowed}")
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit: int, offset: int):
    return query.limit(limit).offset(offset)
