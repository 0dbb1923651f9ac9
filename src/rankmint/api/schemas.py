from __future__ import annotations

"""Pydantic request schemas for the public and admin API.

These exist only for HTTP input validation; domain validation (fee policy,
royalty pool, eligibility) lives in rankmint.issuance and is never duplicated
here.
"""

from typing import Optional

from pydantic import BaseModel, Field


class IssueRequest(BaseModel):
    caller: str = Field(..., min_length=1, description="Address requesting an identifier")
    paid: int = Field(default=0, ge=0, description="Amount attached to the call")


class ClaimRequest(BaseModel):
    caller: str = Field(..., min_length=1, description="Payout address claiming accrued royalties")


class PublicSaleRequest(BaseModel):
    caller: str = Field(..., min_length=1, description="Administrator address")
    active: bool


class FeePolicyRequest(BaseModel):
    caller: str = Field(..., min_length=1, description="Administrator address")
    fee_waived: Optional[bool] = None
    fee_divisor: Optional[int] = None
    min_fee: Optional[int] = None


class AllowlistRegisterRequest(BaseModel):
    caller: str = Field(..., min_length=1, description="Administrator address")
    oracle: str = Field(..., min_length=1, description="Handle of a configured balance oracle")
    royalty_percent: int = Field(..., ge=0, le=100)
    supply_cap: int = Field(..., ge=0)
    min_eligible_balance: int = Field(default=0, ge=0)
    payout_address: str = Field(..., min_length=1)
