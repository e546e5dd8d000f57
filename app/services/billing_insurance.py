# FILE: app/services/billing_insurance.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from app.models.billing import (
    ClaimStatus,
    InsuranceClaim,
    NumberDocType,
    NumberResetPeriod,
    PayMethod,
)
from app.services.billing_account import lock_account, write_with_retry
from app.services.billing_invoice import get_invoice
from app.services.billing_numbers import next_number
from app.services.billing_payment_service import apply_payment_locked
from app.utils.money import Money

logger = logging.getLogger(__name__)

# action -> (allowed from, to). rejected and paid are terminal.
CLAIM_TRANSITIONS = {
    "submit": ({ClaimStatus.PENDING}, ClaimStatus.SUBMITTED),
    "approve": ({ClaimStatus.SUBMITTED}, ClaimStatus.APPROVED),
    "reject": ({ClaimStatus.SUBMITTED}, ClaimStatus.REJECTED),
    "mark_paid": ({ClaimStatus.APPROVED}, ClaimStatus.PAID),
}


def _now() -> datetime:
    return datetime.utcnow()


def get_claim(db: Session, claim_id: int) -> InsuranceClaim:
    cl = db.query(InsuranceClaim).filter(
        InsuranceClaim.id == int(claim_id)).one_or_none()
    if not cl:
        raise NotFoundError("Insurance claim", claim_id)
    return cl


def _lock_claim(db: Session, claim_id: int) -> InsuranceClaim:
    cl = (db.query(InsuranceClaim).filter(
        InsuranceClaim.id == int(claim_id)).populate_existing().with_for_update().one_or_none())
    if not cl:
        raise NotFoundError("Insurance claim", claim_id)
    return cl


def _transition(cl: InsuranceClaim, action: str) -> ClaimStatus:
    allowed, target = CLAIM_TRANSITIONS[action]
    current = ClaimStatus(cl.status)
    if current not in allowed:
        raise InvalidTransitionError(
            f"Cannot {action.replace('_', ' ')} a claim that is {current.value}",
            details={
                "claim_id": cl.id,
                "status": current.value,
                "action": action
            },
        )
    return target


def _required(v: Optional[str], field: str, max_len: int) -> str:
    s = (v or "").strip()
    if not s:
        raise ValidationError(f"{field} is required")
    if len(s) > max_len:
        raise ValidationError(f"{field} must be at most {max_len} characters")
    return s


# ----------------------------
# Create
# ----------------------------
def create_claim(
    db: Session,
    *,
    invoice_id: int,
    insurance_provider: str,
    policy_number: str,
    claim_amount,
    claim_number: Optional[str] = None,
    remarks: Optional[str] = None,
    created_by: Optional[str] = None,
) -> InsuranceClaim:
    provider = _required(insurance_provider, "insurance_provider", 199)
    policy = _required(policy_number, "policy_number", 100)
    amount = Money.parse(claim_amount, field="claim_amount")
    if amount.minor <= 0:
        raise ValidationError("claim_amount must be > 0")

    inv = get_invoice(db, invoice_id)

    number = (claim_number or "").strip() or None
    if number and db.query(InsuranceClaim.id).filter(
            InsuranceClaim.claim_number == number).first():
        raise ValidationError(f"Claim number {number} already exists")

    def op() -> InsuranceClaim:
        cl = InsuranceClaim(
            invoice_id=inv.id,
            insurance_provider=provider,
            policy_number=policy,
            claim_number=number or next_number(
                db,
                doc_type=NumberDocType.CLAIM,
                prefix="CLM-",
                reset_period=NumberResetPeriod.YEAR,
                padding=6,
            ),
            claim_amount=amount,
            status=ClaimStatus.PENDING.value,
            remarks=(remarks or None),
            created_by=created_by,
        )
        db.add(cl)
        db.flush()
        return cl

    try:
        cl = write_with_retry(db, op, what="claim")
    except IntegrityError:
        if not number:
            raise
        # a concurrent request took the same number first
        raise ValidationError(f"Claim number {number} already exists")
    logger.info("Insurance claim created: %s invoice=%s amount=%s",
                cl.claim_number, inv.invoice_number, cl.claim_amount)
    return cl


# ----------------------------
# Transitions
# ----------------------------
def submit_claim(db: Session, claim_id: int) -> InsuranceClaim:

    def op() -> InsuranceClaim:
        cl = _lock_claim(db, claim_id)
        cl.status = _transition(cl, "submit").value
        cl.submission_date = _now()
        db.flush()
        return cl

    cl = write_with_retry(db, op, what="claim")
    logger.info("Insurance claim submitted: %s", cl.claim_number)
    return cl


def approve_claim(db: Session, claim_id: int, approved_amount) -> InsuranceClaim:

    def op() -> InsuranceClaim:
        cl = _lock_claim(db, claim_id)
        target = _transition(cl, "approve")
        amount = Money.parse(approved_amount, field="approved_amount")
        if amount.minor <= 0:
            raise ValidationError("approved_amount must be > 0")
        if amount > cl.claim_amount:
            raise ValidationError(
                f"approved_amount {amount} exceeds claim_amount {cl.claim_amount}",
                details={
                    "approved_amount": str(amount),
                    "claim_amount": str(cl.claim_amount),
                },
            )
        cl.status = target.value
        cl.approved_amount = amount
        cl.approval_date = _now()
        db.flush()
        return cl

    cl = write_with_retry(db, op, what="claim")
    logger.info("Insurance claim approved: %s approved=%s of %s",
                cl.claim_number, cl.approved_amount, cl.claim_amount)
    return cl


def reject_claim(db: Session, claim_id: int, reason: str) -> InsuranceClaim:
    why = _required(reason, "reason", 2000)

    def op() -> InsuranceClaim:
        cl = _lock_claim(db, claim_id)
        cl.status = _transition(cl, "reject").value
        cl.rejection_reason = why
        cl.rejection_date = _now()
        db.flush()
        return cl

    cl = write_with_retry(db, op, what="claim")
    logger.info("Insurance claim rejected: %s reason=%s", cl.claim_number,
                cl.rejection_reason)
    return cl


def mark_claim_paid(
    db: Session,
    claim_id: int,
    *,
    apply_payment: bool = True,
    received_by: Optional[str] = None,
    reference_no: Optional[str] = None,
) -> InsuranceClaim:
    """
    approved -> paid. With apply_payment, the insurer's approved amount is
    posted to the invoice's account as an `insurance` payment in the same
    transaction; if the payment is refused the claim stays approved.
    """

    def op() -> InsuranceClaim:
        cl = _lock_claim(db, claim_id)
        target = _transition(cl, "mark_paid")

        if apply_payment:
            acc = lock_account(db, cl.invoice.account_id)
            apply_payment_locked(
                db,
                acc,
                amount=cl.approved_amount,
                method=PayMethod.INSURANCE,
                reference_no=reference_no,
                received_by=received_by,
                notes=f"Insurance claim {cl.claim_number}",
                claim_id=cl.id,
            )

        cl.status = target.value
        cl.paid_date = _now()
        db.flush()
        return cl

    cl = write_with_retry(db, op, what="claim")
    logger.info("Insurance claim paid: %s amount=%s posted=%s", cl.claim_number,
                cl.approved_amount, apply_payment)
    return cl


def claim_snapshot(db: Session, claim_id: int) -> Dict[str, Any]:
    return _claim_row(get_claim(db, claim_id))


def _claim_row(cl: InsuranceClaim) -> Dict[str, Any]:
    return {
        "id": cl.id,
        "invoice_id": cl.invoice_id,
        "invoice_number": cl.invoice.invoice_number,
        "insurance_provider": cl.insurance_provider,
        "policy_number": cl.policy_number,
        "claim_number": cl.claim_number,
        "claim_amount": cl.claim_amount,
        "approved_amount": cl.approved_amount,
        "status": cl.status,
        "submission_date": cl.submission_date,
        "approval_date": cl.approval_date,
        "rejection_date": cl.rejection_date,
        "rejection_reason": cl.rejection_reason,
        "paid_date": cl.paid_date,
        "remarks": cl.remarks,
    }


def list_claims(
    db: Session,
    *,
    status=None,
    limit: int = 50,
    offset: int = 0,
) -> Dict[str, Any]:
    s = (getattr(status, "value", status) or "").strip().lower()
    q = db.query(InsuranceClaim)
    if s and s != "all":
        try:
            st = ClaimStatus(s)
        except ValueError:
            allowed = ", ".join(x.value for x in ClaimStatus)
            raise ValidationError(
                f"Unknown claim status {status!r} (allowed: {allowed}, all)")
        q = q.filter(InsuranceClaim.status == st.value)

    total = q.count()
    rows = (q.order_by(InsuranceClaim.created_at.desc(),
                       InsuranceClaim.id.desc()).offset(int(offset)).limit(int(limit)).all())
    return {"items": [_claim_row(cl) for cl in rows], "total": total}
