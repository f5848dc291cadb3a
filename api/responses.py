"""Uniform JSON envelopes for API handlers.

Every handler answers with ``{"success": true, ...}`` or
``{"success": false, "error": {"code": ..., "message": ...}}`` so clients can
rely on one shape regardless of the endpoint.

Updates:
  v0.1.0 - 2026-09-21 - Initial response helpers.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi.responses import JSONResponse


class ApiError(Exception):
    """Raised inside handlers and dependencies to produce an error envelope."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.headers = dict(headers or {})


def ok(
    data: Mapping[str, Any] | None = None,
    *,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    body = {"success": True, **dict(data or {})}
    return JSONResponse(body, status_code=200, headers=dict(headers or {}))


def error_response(
    status_code: int,
    code: str,
    message: str,
    *,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    body = {"success": False, "error": {"code": code, "message": message}}
    return JSONResponse(body, status_code=status_code, headers=dict(headers or {}))


def unauthorized(message: str = "Authentication required.") -> ApiError:
    return ApiError(401, "UNAUTHORIZED", message)


__all__ = ["ApiError", "error_response", "ok", "unauthorized"]
