# FILE: app/schemas/billing_payments.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.billing import LedgerOut


class PaymentIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    amount: Decimal
    method: str
    reference_no: Optional[str] = None
    received_by: Optional[str] = None
    notes: Optional[str] = None


class PaymentOut(LedgerOut):
    id: int
    account_id: int
    amount: Decimal
    method: str
    reference_no: Optional[str] = None
    received_by: Optional[str] = None
    notes: Optional[str] = None
    claim_id: Optional[int] = None
    created_at: Optional[datetime] = None


class PaymentListOut(LedgerOut):
    items: List[PaymentOut]
    total: int
