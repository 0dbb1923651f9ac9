from __future__ import annotations

from fastapi import APIRouter, Request

from rankmint import __version__

router = APIRouter()


@router.get("/health")
def health(request: Request):
    svc = getattr(request.app.state, "service", None)
    return {"ok": True, "version": __version__, "ready": svc is not None, "mode": getattr(svc, "mode", None)}
