from __future__ import annotations

from fastapi import APIRouter, Request

from rankmint.api.routes_public_parts.common import _service

router = APIRouter()


@router.get("/state")
def v1_state(request: Request):
    return {"ok": True, "state": _service(request).read_state()}


@router.get("/identities/{identifier}")
def v1_identity(identifier: int, request: Request):
    """Trait resolved for `identifier` at its own issuance moment."""
    return {"ok": True, "identity": _service(request).trait_of(identifier)}
