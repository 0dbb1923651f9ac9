from __future__ import annotations

from fastapi import APIRouter, Request

from rankmint.api.routes_public_parts.common import Json, _service

router = APIRouter()


@router.get("/allowlist")
def v1_allowlist(request: Request) -> Json:
    entries = _service(request).allowlist()
    return {"ok": True, "count": len(entries), "entries": entries}


@router.get("/allowlist/{position}/balance/{address}")
def v1_allowlist_balance(position: int, address: str, request: Request) -> Json:
    """Read-only passthrough to the entry's third-party balance oracle."""
    bal = _service(request).lookup_balance(position, address)
    return {"ok": True, "position": int(position), "address": address, "balance": int(bal)}
