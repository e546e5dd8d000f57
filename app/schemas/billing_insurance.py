# FILE: app/schemas/billing_insurance.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.billing import LedgerOut


class ClaimCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    invoice_id: int
    insurance_provider: str
    policy_number: str
    claim_amount: Decimal
    claim_number: Optional[str] = None
    remarks: Optional[str] = None
    created_by: Optional[str] = None


class ClaimApproveIn(BaseModel):
    approved_amount: Decimal


class ClaimRejectIn(BaseModel):
    reason: str


class ClaimPaidIn(BaseModel):
    apply_payment: bool = True
    received_by: Optional[str] = None
    reference_no: Optional[str] = None


class ClaimOut(LedgerOut):
    id: int
    invoice_id: int
    invoice_number: str
    insurance_provider: str
    policy_number: str
    claim_number: str
    claim_amount: Decimal
    approved_amount: Optional[Decimal] = None
    status: str
    submission_date: Optional[datetime] = None
    approval_date: Optional[datetime] = None
    rejection_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    paid_date: Optional[datetime] = None
    remarks: Optional[str] = None


class ClaimListOut(LedgerOut):
    items: List[ClaimOut]
    total: int


class ClaimStatsOut(LedgerOut):
    total_claims: int
    by_status: Dict[str, int]
    pending: int
    settlement_rate: int
    total_claimed: Decimal
    total_approved: Decimal
