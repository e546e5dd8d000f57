# FILE: app/services/billing_reports.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.billing import (
    AccountStatus,
    BillingAccount,
    BillingItem,
    ClaimStatus,
    InsuranceClaim,
    ItemStatus,
    Payment,
)
from app.utils.money import Money


def _m(v) -> Money:
    if isinstance(v, Money):
        return v
    return Money(int(v or 0))


def billing_summary(db: Session, encounter_id: int) -> Dict[str, Any]:
    acc = db.query(BillingAccount).filter(
        BillingAccount.encounter_id == int(encounter_id)).one_or_none()
    if not acc:
        return {
            "account_exists": False,
            "account_no": None,
            "total_amount": Money.zero(),
            "amount_paid": Money.zero(),
            "balance": Money.zero(),
            "status": None,
            "items_count": 0,
        }

    items_count = (db.query(func.count(BillingItem.id)).filter(
        BillingItem.account_id == acc.id,
        BillingItem.status != ItemStatus.VOIDED.value,
    ).scalar()) or 0

    return {
        "account_exists": True,
        "account_no": acc.account_no,
        "total_amount": acc.total_amount,
        "amount_paid": acc.amount_paid,
        "balance": acc.balance,
        "status": acc.status,
        "items_count": int(items_count),
    }


def payment_stats(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or datetime.utcnow().date()
    day_start = datetime.combine(today, time.min)
    day_end = day_start + timedelta(days=1)

    count, total = db.query(func.count(Payment.id),
                            func.coalesce(func.sum(Payment.amount), 0)).one()

    t_count, t_total = (db.query(
        func.count(Payment.id),
        func.coalesce(func.sum(Payment.amount), 0)).filter(
            Payment.created_at >= day_start,
            Payment.created_at < day_end).one())

    rows = (db.query(Payment.method, func.count(Payment.id),
                     func.coalesce(func.sum(Payment.amount), 0)).group_by(
                         Payment.method).order_by(Payment.method).all())

    return {
        "total_payments": int(count or 0),
        "total_amount": _m(total),
        "today_payments": int(t_count or 0),
        "today_amount": _m(t_total),
        "by_method": [{
            "method": method,
            "count": int(n or 0),
            "amount": _m(amt),
        } for method, n, amt in rows],
    }


def claim_stats(db: Session) -> Dict[str, Any]:
    rows = (db.query(InsuranceClaim.status,
                     func.count(InsuranceClaim.id)).group_by(
                         InsuranceClaim.status).all())
    by_status = {s.value: 0 for s in ClaimStatus}
    for status, n in rows:
        by_status[status] = int(n or 0)

    total = sum(by_status.values())
    settled = by_status[ClaimStatus.APPROVED.value] + by_status[
        ClaimStatus.PAID.value]
    # round-half-up on integers, no float
    rate = (200 * settled + total) // (2 * total) if total else 0

    claimed, approved = db.query(
        func.coalesce(func.sum(InsuranceClaim.claim_amount), 0),
        func.coalesce(func.sum(InsuranceClaim.approved_amount), 0),
    ).one()

    return {
        "total_claims": total,
        "by_status": by_status,
        "pending": by_status[ClaimStatus.PENDING.value],
        "settlement_rate": int(rate),
        "total_claimed": _m(claimed),
        "total_approved": _m(approved),
    }


def outstanding_summary(db: Session) -> Dict[str, Any]:
    n, bal = (db.query(func.count(BillingAccount.id),
                       func.coalesce(func.sum(BillingAccount.balance), 0)).filter(
                           BillingAccount.status == AccountStatus.OPEN.value).one())
    with_balance = (db.query(func.count(BillingAccount.id)).filter(
        BillingAccount.status == AccountStatus.OPEN.value,
        BillingAccount.balance > 0,
    ).scalar()) or 0
    return {
        "open_accounts": int(n or 0),
        "accounts_with_balance": int(with_balance),
        "outstanding_amount": _m(bal),
    }
