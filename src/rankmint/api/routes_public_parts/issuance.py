from __future__ import annotations

from fastapi import APIRouter, Request

from rankmint.api.routes_public_parts.common import Json, _service
from rankmint.api.schemas import ClaimRequest, IssueRequest

router = APIRouter()


@router.post("/issue")
def v1_issue(body: IssueRequest, request: Request) -> Json:
    """Request one identifier for `caller`, paying `paid`.

    A rejected call (sale locked, already a holder, short payment, supply
    exhausted) changes nothing and refunds the payment. Payout failures during
    the periodic disbursement never fail the call; they show up in
    `receipt.disbursement`.
    """
    receipt = _service(request).issue(body.caller, body.paid)
    return {"ok": True, "receipt": receipt}


@router.post("/claim")
def v1_claim(body: ClaimRequest, request: Request) -> Json:
    paid_out = _service(request).claim(body.caller)
    return {"ok": True, "caller": body.caller, "paid_out": int(paid_out)}
