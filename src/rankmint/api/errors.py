from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from rankmint.issuance.errors import InvariantViolation, IssuanceError, PreconditionFailure


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    @staticmethod
    def from_issuance(e: IssuanceError) -> "ApiError":
        details = e.details if isinstance(e.details, dict) else {}
        if isinstance(e, InvariantViolation):
            return ApiError.internal(e.code, e.reason, details)
        if e.code == "forbidden":
            return ApiError.forbidden(e.code, e.reason, details)
        if e.code == "not_found":
            return ApiError.not_found(e.code, e.reason, details)
        if isinstance(e, PreconditionFailure):
            return ApiError.bad_request(e.code, e.reason, details)
        return ApiError.internal(e.code, e.reason, details)

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content={"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}},
        )


async def api_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, ApiError):
        return exc.to_response()
    if isinstance(exc, IssuanceError):
        return ApiError.from_issuance(exc).to_response()
    return ApiError.internal("internal_error", "unhandled error", {}).to_response()
