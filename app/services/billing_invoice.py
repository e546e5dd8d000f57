# FILE: app/services/billing_invoice.py
from __future__ import annotations

import enum
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.billing import (
    BillingAccount,
    BillingItem,
    Invoice,
    ItemStatus,
    NumberDocType,
    NumberResetPeriod,
)
from app.services.billing_account import lock_account, recompute, write_with_retry
from app.services.billing_numbers import next_number
from app.utils.money import Money

logger = logging.getLogger(__name__)


class InvoiceStatus(str, enum.Enum):
    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


def resolve_invoice_status(total: Money, paid: Money) -> InvoiceStatus:
    """
    paid >= total      -> paid   (includes total == paid == 0: nothing owed)
    0 < paid < total   -> partial
    paid == 0          -> unpaid
    """
    if paid >= total:
        return InvoiceStatus.PAID
    if paid.minor > 0:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.UNPAID


def get_invoice(db: Session, invoice_id: int) -> Invoice:
    inv = db.query(Invoice).filter(Invoice.id == int(invoice_id)).one_or_none()
    if not inv:
        raise NotFoundError("Invoice", invoice_id)
    return inv


def generate_invoice(db: Session,
                     account_id: int,
                     *,
                     created_by: Optional[str] = None) -> Invoice:
    """
    One invoice per account. Calling again returns the same invoice and
    marks any charges posted since as billed.
    """

    def op() -> Invoice:
        acc = lock_account(db, account_id)

        n_items = (db.query(func.count(BillingItem.id)).filter(
            BillingItem.account_id == acc.id,
            BillingItem.status != ItemStatus.VOIDED.value,
        ).scalar()) or 0
        if not n_items:
            raise ValidationError(
                f"No billing items found for account {acc.account_no}")

        inv = db.query(Invoice).filter(Invoice.account_id == acc.id).one_or_none()
        if not inv:
            inv = Invoice(
                invoice_number=next_number(
                    db,
                    doc_type=NumberDocType.INVOICE,
                    prefix="INV-",
                    reset_period=NumberResetPeriod.YEAR,
                    padding=6,
                ),
                account_id=acc.id,
                patient_id=acc.patient_id,
                encounter_id=acc.encounter_id,
                created_by=created_by,
            )
            db.add(inv)
            logger.info("Invoice generated: %s account=%s", inv.invoice_number,
                        acc.account_no)

        (db.query(BillingItem).filter(
            BillingItem.account_id == acc.id,
            BillingItem.status == ItemStatus.PENDING.value,
        ).update({BillingItem.status: ItemStatus.BILLED.value},
                 synchronize_session="fetch"))

        recompute(db, acc)
        return inv

    return write_with_retry(db, op)


def invoice_snapshot(db: Session, invoice_id: int) -> Dict[str, Any]:
    return _invoice_row(get_invoice(db, invoice_id))


def _invoice_row(inv: Invoice) -> Dict[str, Any]:
    acc = inv.account
    return {
        "id": inv.id,
        "invoice_number": inv.invoice_number,
        "account_id": acc.id,
        "account_no": acc.account_no,
        "patient_id": inv.patient_id,
        "encounter_id": inv.encounter_id,
        "total_amount": acc.total_amount,
        "amount_paid": acc.amount_paid,
        "balance": acc.balance,
        "status": resolve_invoice_status(acc.total_amount, acc.amount_paid).value,
        "created_at": inv.created_at,
    }


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def _status_clause(status: InvoiceStatus):
    # SQL rendering of resolve_invoice_status over the owning account
    total, paid = BillingAccount.total_amount, BillingAccount.amount_paid
    if status == InvoiceStatus.PAID:
        return paid >= total
    if status == InvoiceStatus.PARTIAL:
        return and_(paid > 0, paid < total)
    return and_(paid == 0, total > 0)


def parse_invoice_status(v) -> Optional[InvoiceStatus]:
    s = (getattr(v, "value", v) or "").strip().lower()
    if not s or s == "all":
        return None
    try:
        return InvoiceStatus(s)
    except ValueError:
        allowed = ", ".join(x.value for x in InvoiceStatus)
        raise ValidationError(f"Unknown invoice status {v!r} (allowed: {allowed}, all)")


def list_invoices(
    db: Session,
    *,
    status=None,
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 50,
    offset: int = 0,
) -> Dict[str, Any]:
    """
    Invoices newest first. `status` is resolved from the account figures,
    never read from a stored column; `search` matches invoice or account number.
    Dates are inclusive calendar days on the invoice's creation time.
    """
    st = parse_invoice_status(status)
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must not be after date_to")

    base = db.query(Invoice).join(BillingAccount,
                                  Invoice.account_id == BillingAccount.id)
    if date_from:
        base = base.filter(
            Invoice.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        base = base.filter(Invoice.created_at < datetime.combine(
            date_to + timedelta(days=1), time.min))
    s = (search or "").strip()
    if s:
        like = f"%{s}%"
        base = base.filter(
            or_(Invoice.invoice_number.like(like),
                BillingAccount.account_no.like(like)))

    by_status = {
        x.value: base.filter(_status_clause(x)).count()
        for x in InvoiceStatus
    }

    q = base.filter(_status_clause(st)) if st else base
    total = q.count()
    rows = (q.order_by(Invoice.created_at.desc(),
                       Invoice.id.desc()).offset(int(offset)).limit(int(limit)).all())

    return {
        "items": [_invoice_row(inv) for inv in rows],
        "total": total,
        "by_status": by_status,
    }
