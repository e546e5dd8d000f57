# FILE: app/services/billing_payment_service.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import (
    AccountClosedError,
    InvalidAmountError,
    OverpaymentError,
    ValidationError,
)
from app.models.billing import BillingAccount, Payment, PayMethod
from app.services.billing_account import (
    get_account,
    lock_account,
    recompute,
    write_with_retry,
)
from app.services.billing_numbers import next_payment_reference
from app.utils.money import Money

logger = logging.getLogger(__name__)


def parse_payment_amount(v) -> Money:
    amount = Money.parse(v, field="amount")
    if amount.minor <= 0:
        raise InvalidAmountError("Payment amount must be > 0",
                                 details={"amount": str(amount)})
    return amount


def parse_method(v) -> PayMethod:
    try:
        return PayMethod(getattr(v, "value", v))
    except ValueError:
        allowed = ", ".join(m.value for m in PayMethod)
        raise ValidationError(
            f"Unknown payment method {v!r} (allowed: {allowed})")


def apply_payment_locked(
    db: Session,
    acc: BillingAccount,
    *,
    amount: Money,
    method: PayMethod,
    reference_no: Optional[str] = None,
    received_by: Optional[str] = None,
    notes: Optional[str] = None,
    claim_id: Optional[int] = None,
) -> Payment:
    """
    Check-then-append on an account the caller has already locked.
    Does not commit.
    """
    if not acc.is_open:
        raise AccountClosedError(f"Account {acc.account_no} is closed")

    # fresh balance, never the cached column
    recompute(db, acc)
    if amount > acc.balance:
        raise OverpaymentError(
            f"Payment {amount} exceeds the outstanding balance {acc.balance}",
            details={
                "amount": str(amount),
                "balance": str(acc.balance)
            },
        )

    ref = (reference_no or "").strip() or next_payment_reference(
        db, method.value)

    pay = Payment(
        account_id=acc.id,
        amount=amount,
        method=method.value,
        reference_no=ref,
        notes=(notes or None),
        received_by=received_by,
        claim_id=claim_id,
    )
    db.add(pay)
    recompute(db, acc)
    return pay


def apply_payment(
    db: Session,
    account_id: int,
    *,
    amount,
    method,
    reference_no: Optional[str] = None,
    received_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> Payment:
    """
    Record one payment against the account's current balance.

    amount <= 0 -> InvalidAmountError, amount > balance -> OverpaymentError.
    Reaching a zero balance does not close the account.
    """
    amt = parse_payment_amount(amount)
    pm = parse_method(method)

    def op() -> Payment:
        acc = lock_account(db, account_id)
        return apply_payment_locked(
            db,
            acc,
            amount=amt,
            method=pm,
            reference_no=reference_no,
            received_by=received_by,
            notes=notes,
        )

    pay = write_with_retry(db, op)
    logger.info("Payment received: account=%s payment=%s method=%s amount=%s ref=%s",
                account_id, pay.id, pay.method, pay.amount, pay.reference_no)
    return pay


def list_payments(db: Session, account_id: int) -> List[Payment]:
    acc = get_account(db, account_id)
    return (db.query(Payment).filter(Payment.account_id == acc.id).order_by(
        Payment.id.asc()).all())


def search_payments(
    db: Session,
    *,
    method=None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    reference: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Dict[str, Any]:
    """Payments across all accounts, newest first. Date bounds are inclusive days."""
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must not be after date_to")

    q = db.query(Payment)
    if method:
        q = q.filter(Payment.method == parse_method(method).value)
    if date_from:
        q = q.filter(Payment.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        q = q.filter(Payment.created_at < datetime.combine(
            date_to + timedelta(days=1), time.min))
    ref = (reference or "").strip()
    if ref:
        q = q.filter(Payment.reference_no.like(f"%{ref}%"))

    total = q.count()
    rows = (q.order_by(Payment.created_at.desc(),
                       Payment.id.desc()).offset(int(offset)).limit(int(limit)).all())
    return {"items": rows, "total": total}
