# FILE: app/schemas/billing.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from app.utils.money import Money


class LedgerOut(BaseModel):
    """Base for outputs: Money leaves the ledger as a Decimal ("1500.00")."""
    model_config = ConfigDict(from_attributes=True)

    @field_validator("*", mode="before")
    @classmethod
    def _money_out(cls, v):
        if isinstance(v, Money):
            return v.to_decimal()
        return v


class AccountCreate(BaseModel):
    patient_id: int
    encounter_id: int
    created_by: Optional[str] = None


class ItemIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    item_type: str
    description: str
    quantity: int = 1
    unit_price: Decimal
    discount_amount: Decimal = Decimal("0")
    service_code: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    created_by: Optional[str] = None


class VoidItemIn(BaseModel):
    reason: Optional[str] = None
    voided_by: Optional[str] = None


class InvoiceCreate(BaseModel):
    created_by: Optional[str] = None


class AccountOut(LedgerOut):
    id: int
    account_no: str
    patient_id: int
    encounter_id: int
    status: str
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    invoice_status: str
    items_count: int
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class AccountVerifyOut(LedgerOut):
    account_id: int
    account_no: str
    consistent: bool
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal


class ItemOut(LedgerOut):
    id: int
    account_id: int
    item_type: str
    description: str
    service_code: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    quantity: int
    unit_price: Decimal
    discount_amount: Decimal
    net_amount: Decimal
    status: str
    void_reason: Optional[str] = None
    voided_by: Optional[str] = None
    voided_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class InvoiceOut(LedgerOut):
    id: int
    invoice_number: str
    account_id: int
    account_no: str
    patient_id: int
    encounter_id: int
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: str
    created_at: Optional[datetime] = None


class InvoiceListOut(LedgerOut):
    items: List[InvoiceOut]
    total: int
    by_status: Dict[str, int]


class BillingSummaryOut(LedgerOut):
    account_exists: bool
    account_no: Optional[str] = None
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: Optional[str] = None
    items_count: int


class MethodTotalOut(LedgerOut):
    method: str
    count: int
    amount: Decimal


class PaymentStatsOut(LedgerOut):
    total_payments: int
    total_amount: Decimal
    today_payments: int
    today_amount: Decimal
    by_method: List[MethodTotalOut]


class OutstandingOut(LedgerOut):
    open_accounts: int
    accounts_with_balance: int
    outstanding_amount: Decimal
