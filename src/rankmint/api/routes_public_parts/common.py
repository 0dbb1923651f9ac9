from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from rankmint.api.errors import ApiError
from rankmint.runtime.service import IssuanceService

Json = Dict[str, Any]


def _service(request: Request) -> IssuanceService:
    svc = getattr(request.app.state, "service", None)
    if svc is None:
        raise ApiError.internal("not_ready", "service not attached to app.state", {})
    return svc
