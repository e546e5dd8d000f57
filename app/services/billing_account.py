# FILE: app/services/billing_account.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.errors import (
    AccountNotSettledError,
    ConcurrencyConflictError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from app.models.billing import (
    AccountStatus,
    BillingAccount,
    BillingItem,
    ItemStatus,
    Payment,
)
from app.services.billing_numbers import account_number
from app.utils.money import Money

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_money(v) -> Money:
    if isinstance(v, Money):
        return v
    return Money(int(v or 0))


# ---------------------------------------------------------------------------
# Transaction boundary
# ---------------------------------------------------------------------------


def write_with_retry(db: Session, op: Callable[[], T], *, what: str = "account") -> T:
    """
    Run one ledger write as a single transaction.

    `op` must (re)load and lock the rows it mutates, so a retry after a
    version conflict sees the committed state of the winning writer.
    Any failure rolls back; the rows are left exactly as before the call.
    """
    attempts = max(1, int(settings.BILLING_WRITE_RETRIES))
    for attempt in range(1, attempts + 1):
        try:
            result = op()
            db.commit()
            return result
        except StaleDataError:
            db.rollback()
            logger.warning("Concurrent update on %s, attempt %s/%s", what,
                           attempt, attempts)
            if attempt == attempts:
                raise ConcurrencyConflictError(
                    f"The {what} was modified concurrently, please retry")
        except Exception:
            db.rollback()
            raise
    raise ConcurrencyConflictError(f"The {what} was modified concurrently")


def get_account(db: Session, account_id: int) -> BillingAccount:
    acc = db.query(BillingAccount).filter(
        BillingAccount.id == int(account_id)).one_or_none()
    if not acc:
        raise NotFoundError("Billing account", account_id)
    return acc


def lock_account(db: Session, account_id: int) -> BillingAccount:
    """
    Serialization point for every account write: row lock where the
    database supports it, plus the `version` check at flush time.
    """
    acc = (db.query(BillingAccount).filter(
        BillingAccount.id == int(account_id)).populate_existing().with_for_update().one_or_none())
    if not acc:
        raise NotFoundError("Billing account", account_id)
    return acc


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def sum_items(db: Session, account_id: int) -> Money:
    v = (db.query(func.coalesce(func.sum(BillingItem.net_amount), 0)).filter(
        BillingItem.account_id == int(account_id),
        BillingItem.status != ItemStatus.VOIDED.value,
    ).scalar())
    return _as_money(v)


def sum_payments(db: Session, account_id: int) -> Money:
    v = (db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.account_id == int(account_id)).scalar())
    return _as_money(v)


def recompute(db: Session, account: BillingAccount) -> BillingAccount:
    """
    Re-derive total_amount, amount_paid and balance from the rows.

    A negative balance means a payment slipped past the engine; it is
    reported, never corrected.
    """
    db.flush()
    total = sum_items(db, account.id)
    paid = sum_payments(db, account.id)
    balance = total - paid

    if balance.is_negative:
        logger.error(
            "Billing invariant violated: account=%s total=%s paid=%s balance=%s",
            account.account_no, total, paid, balance)
        raise InvariantViolationError(
            f"Account {account.account_no} balance would be negative ({balance})",
            details={
                "account_id": account.id,
                "total_amount": str(total),
                "amount_paid": str(paid),
            },
        )

    account.total_amount = total
    account.amount_paid = paid
    account.balance = balance
    # always touch the row so the version column serializes writers
    account.updated_at = datetime.utcnow()
    db.flush()
    return account


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def open_account(
    db: Session,
    *,
    patient_id: int,
    encounter_id: int,
    created_by: Optional[str] = None,
) -> BillingAccount:
    """Get-or-create the account of an encounter (one account per encounter)."""
    if int(patient_id) <= 0 or int(encounter_id) <= 0:
        raise ValidationError("patient_id and encounter_id must be positive")

    acc = db.query(BillingAccount).filter(
        BillingAccount.encounter_id == int(encounter_id)).one_or_none()
    if acc:
        if int(acc.patient_id) != int(patient_id):
            raise ValidationError(
                f"Encounter {encounter_id} is billed to another patient")
        return acc

    def op() -> BillingAccount:
        acc = BillingAccount(
            account_no=account_number(
                encounter_id,
                prefix=settings.BILLING_ACCOUNT_PREFIX,
                padding=settings.BILLING_ACCOUNT_PADDING,
            ),
            patient_id=int(patient_id),
            encounter_id=int(encounter_id),
            status=AccountStatus.OPEN.value,
            total_amount=Money.zero(),
            amount_paid=Money.zero(),
            balance=Money.zero(),
            created_by=created_by,
        )
        db.add(acc)
        db.flush()
        return acc

    try:
        acc = write_with_retry(db, op)
    except IntegrityError:
        # another terminal opened it first; write_with_retry already rolled back
        acc = db.query(BillingAccount).filter(
            BillingAccount.encounter_id == int(encounter_id)).one_or_none()
        if not acc:
            raise
        if int(acc.patient_id) != int(patient_id):
            raise ValidationError(
                f"Encounter {encounter_id} is billed to another patient")
        return acc

    logger.info("Billing account opened: %s patient=%s encounter=%s",
                acc.account_no, acc.patient_id, acc.encounter_id)
    return acc


def close_account(db: Session, account_id: int) -> BillingAccount:
    """Explicit close; only a settled account may close. Closing twice is a no-op."""

    def op() -> BillingAccount:
        acc = lock_account(db, account_id)
        if not acc.is_open:
            return acc
        recompute(db, acc)
        if acc.balance:
            raise AccountNotSettledError(
                f"Account {acc.account_no} has an outstanding balance of {acc.balance}",
                details={"balance": str(acc.balance)},
            )
        acc.status = AccountStatus.CLOSED.value
        acc.closed_at = datetime.utcnow()
        db.flush()
        return acc

    acc = write_with_retry(db, op)
    logger.info("Billing account closed: %s", acc.account_no)
    return acc


def verify_account(db: Session, account_id: int) -> Dict[str, Any]:
    """Compare stored aggregates with fresh sums. Drift is an invariant violation."""
    acc = get_account(db, account_id)
    total = sum_items(db, acc.id)
    paid = sum_payments(db, acc.id)
    balance = total - paid

    drift = {}
    for name, fresh in (("total_amount", total), ("amount_paid", paid),
                        ("balance", balance)):
        stored = getattr(acc, name)
        if stored != fresh:
            drift[name] = {"stored": str(stored), "computed": str(fresh)}

    if balance.is_negative:
        drift["balance_negative"] = str(balance)

    if drift:
        logger.error("Billing account %s drifted from its ledger: %s",
                     acc.account_no, drift)
        raise InvariantViolationError(
            f"Account {acc.account_no} aggregates do not match its ledger",
            details=drift)

    return {
        "account_id": acc.id,
        "account_no": acc.account_no,
        "consistent": True,
        "total_amount": total,
        "amount_paid": paid,
        "balance": balance,
    }


def account_snapshot(db: Session, account_id: int) -> Dict[str, Any]:
    # local import: billing_invoice depends on this module
    from app.services.billing_invoice import resolve_invoice_status

    acc = get_account(db, account_id)
    items_count = (db.query(func.count(BillingItem.id)).filter(
        BillingItem.account_id == acc.id,
        BillingItem.status != ItemStatus.VOIDED.value,
    ).scalar()) or 0

    return {
        "id": acc.id,
        "account_no": acc.account_no,
        "patient_id": acc.patient_id,
        "encounter_id": acc.encounter_id,
        "status": acc.status,
        "total_amount": acc.total_amount,
        "amount_paid": acc.amount_paid,
        "balance": acc.balance,
        "invoice_status": resolve_invoice_status(acc.total_amount,
                                                 acc.amount_paid).value,
        "items_count": int(items_count),
        "created_at": acc.created_at,
        "closed_at": acc.closed_at,
    }
