"""Unified error taxonomy for CRM services."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException


@dataclass(frozen=True)
class CrmError(Exception):
    code: str
    detail: str
    status_code: int = 400

    def __str__(self) -> str:
        return self.detail

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.detail)


class ValidationError(CrmError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=400)


class InvalidStatusError(ValidationError):
    pass


class NotFoundError(CrmError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=404)


class AuthorizationError(CrmError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=403)


class ConflictError(CrmError):
    """Unique identity collisions. Status races are last-writer-wins, never a conflict."""

    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail, status_code=409)


def as_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, CrmError):
        return exc.to_http_exception()
    if isinstance(exc, HTTPException):
        return exc
    return HTTPException(status_code=500, detail=str(exc) or "CRM error")
