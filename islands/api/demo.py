"""Demo JSON API.

Fixed payloads wrapped in a uniform envelope::

    {"success": true, "data": {...}}
    {"success": false, "error": "..."}
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

router = APIRouter(prefix="/api", tags=["demo"])


class APIResponse(BaseModel):
    """Envelope shared by every /api response."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


def send_json(status_code: int, success: bool, data: Any = None, error: Optional[str] = None) -> JSONResponse:
    """Serialise an `APIResponse`, omitting empty ``data``/``error`` fields."""

    payload = APIResponse(success=success, data=data, error=error)
    return JSONResponse(
        content=payload.model_dump(exclude_none=True),
        status_code=status_code,
    )


def rfc3339_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@router.get("/time")
async def current_time() -> JSONResponse:
    return send_json(200, True, {"time": rfc3339_now()})


@router.get("/users/{user_id}")
async def get_user(user_id: str) -> JSONResponse:
    """Return a canned user; there is no user store behind this."""

    if not user_id.strip():
        return send_json(400, False, error="User ID is required")

    user = {
        "id": user_id,
        "name": "John Doe",
        "email": "john@example.com",
        "role": "Developer",
    }
    return send_json(200, True, user)


@router.get("/error-demo")
async def error_demo() -> JSONResponse:
    return send_json(500, False, error="This is a demonstration of error handling")


__all__ = ["router", "APIResponse", "send_json", "rfc3339_now"]
