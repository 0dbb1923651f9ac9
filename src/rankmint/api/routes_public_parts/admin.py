from __future__ import annotations

from fastapi import APIRouter, Request

from rankmint.api.routes_public_parts.common import Json, _service
from rankmint.api.schemas import AllowlistRegisterRequest, FeePolicyRequest, PublicSaleRequest

router = APIRouter()

# Every route here is gated by the administrator check inside the controller;
# a non-administrator caller gets 403 forbidden.


@router.post("/admin/sale")
def v1_admin_sale(body: PublicSaleRequest, request: Request) -> Json:
    return {"ok": True, "settings": _service(request).set_public_sale(body.caller, body.active)}


@router.post("/admin/fee-policy")
def v1_admin_fee_policy(body: FeePolicyRequest, request: Request) -> Json:
    settings = _service(request).set_fee_policy(
        body.caller,
        fee_waived=body.fee_waived,
        fee_divisor=body.fee_divisor,
        min_fee=body.min_fee,
    )
    return {"ok": True, "settings": settings}


@router.post("/admin/allowlist")
def v1_admin_allowlist(body: AllowlistRegisterRequest, request: Request) -> Json:
    position = _service(request).register_allowlist_entry(
        body.caller,
        oracle_handle=body.oracle,
        royalty_percent=body.royalty_percent,
        supply_cap=body.supply_cap,
        min_eligible_balance=body.min_eligible_balance,
        payout_address=body.payout_address,
    )
    return {"ok": True, "position": int(position)}
