# app/models/__init__.py
from .billing import (
    AccountStatus,
    BillingAccount,
    BillingItem,
    BillingNumberSeries,
    ClaimStatus,
    InsuranceClaim,
    Invoice,
    ItemStatus,
    ItemType,
    NumberDocType,
    NumberResetPeriod,
    Payment,
    PayMethod,
)

__all__ = [
    "AccountStatus",
    "BillingAccount",
    "BillingItem",
    "BillingNumberSeries",
    "ClaimStatus",
    "InsuranceClaim",
    "Invoice",
    "ItemStatus",
    "ItemType",
    "NumberDocType",
    "NumberResetPeriod",
    "Payment",
    "PayMethod",
]
