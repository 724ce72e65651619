from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from fastapi.responses import JSONResponse


HTTP_TO_CACHE_CODE = {
    400: "CACHE-400",
    404: "CACHE-404",
    405: "CACHE-405",
    422: "CACHE-422",
    500: "CACHE-500",
}


@dataclass(frozen=True)
class CacheError:
    error_id: str
    error_code: str
    message: str
    retryable: bool

    def to_response(self) -> dict:
        return {
            "id": self.error_id,
            "code": self.error_code,
            "message": self.message,
            "retryable": self.retryable,
        }


def build_error(status_code: int, message: str, *, retryable: bool = False) -> CacheError:
    return CacheError(
        error_id=f"err_{uuid4().hex[:12]}",
        error_code=HTTP_TO_CACHE_CODE.get(status_code, "CACHE-500"),
        message=message,
        retryable=retryable,
    )


def error_response(status_code: int, message: str, *, request_id: Optional[str] = None) -> JSONResponse:
    err = build_error(status_code, message, retryable=status_code >= 500)
    payload = {
        "ok": False,
        "error": err.to_response(),
        "detail": message,
    }
    headers = None
    if request_id:
        payload["request_id"] = request_id
        headers = {"X-Request-Id": request_id}
    return JSONResponse(status_code=status_code, content=payload, headers=headers)
