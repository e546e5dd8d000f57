# FILE: app/services/billing_ledger.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.errors import AccountClosedError, NotFoundError, ValidationError
from app.models.billing import BillingAccount, BillingItem, ItemStatus, ItemType
from app.services.billing_account import (
    get_account,
    lock_account,
    recompute,
    sum_items,
    sum_payments,
    write_with_retry,
)
from app.utils.money import Money

logger = logging.getLogger(__name__)


def line_total(item: BillingItem) -> Money:
    """quantity * unit_price - discount_amount, in exact minor units."""
    return item.unit_price * int(item.quantity) - item.discount_amount


def _item_type(v) -> ItemType:
    try:
        return ItemType(getattr(v, "value", v))
    except ValueError:
        allowed = ", ".join(t.value for t in ItemType)
        raise ValidationError(f"Unknown item_type {v!r} (allowed: {allowed})")


def validate_item_input(
    item_type,
    description: Optional[str],
    quantity,
    unit_price,
    discount_amount=None,
) -> Tuple[ItemType, str, int, Money, Money]:
    it = _item_type(item_type)

    desc = (description or "").strip()
    if not desc:
        raise ValidationError("description is required")
    if len(desc) > 255:
        raise ValidationError("description must be at most 255 characters")

    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be a whole number")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    unit = Money.parse(unit_price, field="unit_price")
    if unit.is_negative:
        raise ValidationError("unit_price must be >= 0")

    disc = Money.zero() if discount_amount is None else Money.parse(
        discount_amount, field="discount_amount")
    if disc.is_negative:
        raise ValidationError("discount_amount must be >= 0")

    gross = unit * quantity
    if disc > gross:
        raise ValidationError(
            f"discount_amount {disc} exceeds line value {gross}",
            details={"line_value": str(gross), "discount_amount": str(disc)},
        )
    return it, desc, quantity, unit, disc


def _ensure_open(acc: BillingAccount) -> None:
    if not acc.is_open:
        raise AccountClosedError(f"Account {acc.account_no} is closed")


def add_item(
    db: Session,
    account_id: int,
    *,
    item_type,
    description: str,
    quantity: int,
    unit_price,
    discount_amount=None,
    service_code: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    created_by: Optional[str] = None,
) -> BillingItem:
    it, desc, qty, unit, disc = validate_item_input(item_type, description,
                                                    quantity, unit_price,
                                                    discount_amount)

    def op() -> BillingItem:
        acc = lock_account(db, account_id)
        _ensure_open(acc)

        item = BillingItem(
            account_id=acc.id,
            item_type=it.value,
            description=desc,
            quantity=qty,
            unit_price=unit,
            discount_amount=disc,
            service_code=service_code,
            reference_type=reference_type,
            reference_id=None if reference_id is None else str(reference_id),
            status=ItemStatus.PENDING.value,
            created_by=created_by,
        )
        item.net_amount = line_total(item)
        db.add(item)
        recompute(db, acc)
        return item

    item = write_with_retry(db, op)
    logger.info("Billing item posted: account=%s item=%s type=%s net=%s",
                account_id, item.id, item.item_type, item.net_amount)
    return item


def void_item(
    db: Session,
    account_id: int,
    item_id: int,
    *,
    reason: Optional[str] = None,
    voided_by: Optional[str] = None,
) -> BillingItem:
    """Void a charge. Refused when the remaining charges would fall below what was paid."""

    def op() -> BillingItem:
        acc = lock_account(db, account_id)
        _ensure_open(acc)

        item = db.query(BillingItem).filter(
            BillingItem.id == int(item_id),
            BillingItem.account_id == acc.id,
        ).one_or_none()
        if not item:
            raise NotFoundError("Billing item", item_id)
        if item.is_voided:
            raise ValidationError(f"Billing item {item.id} is already voided")

        remaining = sum_items(db, acc.id) - item.net_amount
        paid = sum_payments(db, acc.id)
        if paid > remaining:
            raise ValidationError(
                "Voiding this item would leave the account overpaid",
                details={
                    "remaining_total": str(remaining),
                    "amount_paid": str(paid),
                },
            )

        item.status = ItemStatus.VOIDED.value
        item.void_reason = (reason or "").strip() or None
        item.voided_by = voided_by
        item.voided_at = datetime.utcnow()
        recompute(db, acc)
        return item

    item = write_with_retry(db, op)
    logger.info("Billing item voided: account=%s item=%s net=%s reason=%s",
                account_id, item.id, item.net_amount, item.void_reason)
    return item


def list_items(db: Session,
               account_id: int,
               *,
               include_voided: bool = True) -> List[BillingItem]:
    acc = get_account(db, account_id)
    q = db.query(BillingItem).filter(BillingItem.account_id == acc.id)
    if not include_voided:
        q = q.filter(BillingItem.status != ItemStatus.VOIDED.value)
    return q.order_by(BillingItem.id.asc()).all()
