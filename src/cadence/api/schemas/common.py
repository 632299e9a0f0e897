from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ApiError(BaseModel):
    error: str
    type: str
    details: Any = None
    request_id: str | None = None


def fail(*, message: str, error_type: str, request_id: str, details: Any = None) -> dict[str, Any]:
    return {
        "error": message,
        "type": error_type,
        "details": details,
        "request_id": request_id,
    }


def describe_cause(exc: BaseException) -> str | None:
    cause = exc.__cause__ or exc.__context__
    return str(cause) if cause is not None else None
