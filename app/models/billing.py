# FILE: app/models/billing.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    Index,
    ForeignKey,
    UniqueConstraint,
    Text,
)
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.types import MoneyType
from app.utils.money import Money


class AccountStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class ItemType(str, enum.Enum):
    CONSULTATION = "consultation"
    LAB_TEST = "lab_test"
    IMAGING = "imaging"
    PROCEDURE = "procedure"
    MEDICATION = "medication"
    CONSUMABLE = "consumable"
    BED_CHARGE = "bed_charge"
    NURSING = "nursing"
    OTHER = "other"


class ItemStatus(str, enum.Enum):
    PENDING = "pending"
    BILLED = "billed"
    VOIDED = "voided"


class PayMethod(str, enum.Enum):
    CASH = "cash"
    MPESA = "mpesa"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    INSURANCE = "insurance"
    CHEQUE = "cheque"


class ClaimStatus(str, enum.Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class NumberDocType(str, enum.Enum):
    INVOICE = "invoice"
    CLAIM = "claim"
    PAYMENT_REF = "payment_ref"


class NumberResetPeriod(str, enum.Enum):
    NONE = "none"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"


class BillingAccount(Base):
    """
    Ledger aggregate for one patient encounter.

    total_amount / amount_paid / balance are written only by
    `billing_account.recompute()` from item and payment sums.
    `version` is the optimistic-lock counter; every write bumps it.
    """
    __tablename__ = "billing_accounts"

    id = Column(Integer, primary_key=True, index=True)
    account_no = Column(String(32), unique=True, index=True, nullable=False)

    patient_id = Column(Integer, nullable=False, index=True)
    encounter_id = Column(Integer, nullable=False, unique=True, index=True)

    status = Column(String(16), nullable=False, default=AccountStatus.OPEN.value)

    # Derived totals (minor units)
    total_amount = Column(MoneyType, nullable=False, default=Money(0))
    amount_paid = Column(MoneyType, nullable=False, default=Money(0))
    balance = Column(MoneyType, nullable=False, default=Money(0))

    version = Column(Integer, nullable=False)

    closed_at = Column(DateTime, nullable=True)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    items = relationship(
        "BillingItem",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="BillingItem.id",
    )
    payments = relationship(
        "Payment",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )
    invoice = relationship("Invoice", back_populates="account", uselist=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_open(self) -> bool:
        return self.status == AccountStatus.OPEN.value


class BillingItem(Base):
    __tablename__ = "billing_items"
    __table_args__ = (
        Index("ix_billing_items_account_status", "account_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(
        Integer,
        ForeignKey("billing_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    # consultation | lab_test | imaging | procedure | medication | ...
    item_type = Column(String(32), nullable=False)
    description = Column(String(255), nullable=False)

    # optional origin of the charge (service catalogue / order)
    service_code = Column(String(50), nullable=True)
    reference_type = Column(String(100), nullable=True)
    reference_id = Column(String(64), nullable=True)

    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(MoneyType, nullable=False)
    discount_amount = Column(MoneyType, nullable=False, default=Money(0))

    # quantity * unit_price - discount_amount, fixed at creation
    net_amount = Column(MoneyType, nullable=False)

    status = Column(String(16), nullable=False, default=ItemStatus.PENDING.value)

    # Audit for void action
    void_reason = Column(String(255), nullable=True)
    voided_by = Column(String(64), nullable=True)
    voided_at = Column(DateTime, nullable=True)

    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    account = relationship("BillingAccount", back_populates="items")

    @property
    def is_voided(self) -> bool:
        return self.status == ItemStatus.VOIDED.value


class Payment(Base):
    """
    Money received against an account. Append-only; one row per call to
    `apply_payment`, so split tenders are simply several rows.
    """

    __tablename__ = "billing_payments"
    __table_args__ = (Index("ix_billing_payments_account", "account_id"), )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(
        Integer,
        ForeignKey("billing_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    amount = Column(MoneyType, nullable=False)
    method = Column(String(32), nullable=False)
    reference_no = Column(String(100), nullable=True, index=True)
    notes = Column(String(255), nullable=True)
    received_by = Column(String(64), nullable=True)

    # set when the payment settles an insurance claim
    claim_id = Column(Integer,
                      ForeignKey("billing_insurance_claims.id"),
                      nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    account = relationship("BillingAccount", back_populates="payments")


class Invoice(Base):
    """
    Invoice issued for a billing account. Figures are not stored here;
    they are read from the account and resolved on every read.
    """

    __tablename__ = "billing_invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(32), unique=True, index=True, nullable=False)

    account_id = Column(
        Integer,
        ForeignKey("billing_accounts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    patient_id = Column(Integer, nullable=False, index=True)
    encounter_id = Column(Integer, nullable=False)

    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    account = relationship("BillingAccount", back_populates="invoice")
    claims = relationship("InsuranceClaim",
                          back_populates="invoice",
                          order_by="InsuranceClaim.id")


class InsuranceClaim(Base):
    """
    Reimbursement request against an invoice.

    pending -> submitted -> approved -> paid
                         -> rejected
    """

    __tablename__ = "billing_insurance_claims"
    __table_args__ = (Index("ix_billing_claims_invoice", "invoice_id"), )

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer,
                        ForeignKey("billing_invoices.id"),
                        nullable=False)

    insurance_provider = Column(String(199), nullable=False)
    policy_number = Column(String(100), nullable=False)
    claim_number = Column(String(50), unique=True, index=True, nullable=False)

    claim_amount = Column(MoneyType, nullable=False)
    approved_amount = Column(MoneyType, nullable=True)

    status = Column(String(16), nullable=False, default=ClaimStatus.PENDING.value)

    submission_date = Column(DateTime, nullable=True)
    approval_date = Column(DateTime, nullable=True)
    rejection_date = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    paid_date = Column(DateTime, nullable=True)

    remarks = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)

    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    invoice = relationship("Invoice", back_populates="claims")

    __mapper_args__ = {"version_id_col": version}


class BillingNumberSeries(Base):
    """Counter row per (doc_type, prefix, reset_period). Allocation locks the row."""

    __tablename__ = "billing_number_series"
    __table_args__ = (UniqueConstraint("doc_type",
                                       "prefix",
                                       "reset_period",
                                       name="uq_billing_number_series"), )

    id = Column(Integer, primary_key=True, index=True)
    doc_type = Column(String(32), nullable=False)
    prefix = Column(String(20), nullable=False, default="")
    reset_period = Column(String(16),
                          nullable=False,
                          default=NumberResetPeriod.YEAR.value)
    padding = Column(Integer, nullable=False, default=6)
    next_number = Column(Integer, nullable=False, default=1)
    last_period_key = Column(String(16), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
