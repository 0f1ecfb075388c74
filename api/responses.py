"""
api/responses.py -- Uniform JSON envelopes for every API response.

Clients parse one shape per outcome instead of inspecting status codes:

  success:    {"success": true,  "message", "data", "timestamp"}
  paginated:  {"success": true,  "data": [...], "meta": {...}, "timestamp"}
  error:      {"success": false, "error": {code, message, statusCode, detail}, "timestamp"}

Route handlers return success()/paginated(); the exception handlers in
api/main.py are the only callers of error().
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.models import ErrorDetail, ErrorResponse
from core.pagination import page_meta


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return jsonable_encoder(data)


def success(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": True,
            "message": message,
            "data": _dump(data),
            "timestamp": _timestamp(),
        },
    )


def paginated(items: list, *, total: int, page: int, limit: int) -> JSONResponse:
    return JSONResponse(
        content={
            "success": True,
            "data": _dump(items),
            "meta": page_meta(total, page, limit),
            "timestamp": _timestamp(),
        }
    )


def error(status_code: int, code: str, message: str, detail: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, status_code=status_code, detail=detail),
        timestamp=_timestamp(),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))
