from __future__ import annotations

from datetime import datetime
from sqlalchemy.orm import Session

from app.models.billing import BillingNumberSeries, NumberDocType, NumberResetPeriod


def _period_key(dt: datetime, reset: NumberResetPeriod) -> str | None:
    if reset == NumberResetPeriod.NONE:
        return None
    if reset == NumberResetPeriod.YEAR:
        return dt.strftime("%Y")
    if reset == NumberResetPeriod.MONTH:
        return dt.strftime("%Y-%m")
    return dt.strftime("%Y-%m-%d")  # DAY


def next_number(
    db: Session,
    *,
    doc_type: NumberDocType,
    prefix: str,
    reset_period: NumberResetPeriod = NumberResetPeriod.YEAR,
    padding: int = 6,
    now: datetime | None = None,
) -> str:
    """
    Next document number of a series, e.g. INV-000042.
    Uses SELECT FOR UPDATE; the caller owns the transaction.
    """
    now = now or datetime.utcnow()
    pk = _period_key(now, reset_period)

    row = (db.query(BillingNumberSeries).filter(
        BillingNumberSeries.doc_type == doc_type.value,
        BillingNumberSeries.reset_period == reset_period.value,
        BillingNumberSeries.prefix == prefix,
        BillingNumberSeries.is_active.is_(True),
    ).with_for_update().first())

    if not row:
        row = BillingNumberSeries(
            doc_type=doc_type.value,
            prefix=prefix,
            reset_period=reset_period.value,
            padding=padding,
            next_number=1,
            last_period_key=pk,
            is_active=True,
        )
        db.add(row)
        db.flush()

    # reset logic
    if reset_period != NumberResetPeriod.NONE and row.last_period_key != pk:
        row.last_period_key = pk
        row.next_number = 1

    n = int(row.next_number or 1)
    row.next_number = n + 1
    db.flush()

    return f"{prefix}{str(n).zfill(int(row.padding or padding))}"


def account_number(encounter_id: int, *, prefix: str, padding: int) -> str:
    # BA000123 for encounter 123; wider ids are kept whole
    return f"{prefix}{str(int(encounter_id)).zfill(padding)}"


PAYMENT_REF_PREFIX = {
    "cash": "CASH",
    "mpesa": "MPSA",
    "card": "CARD",
    "bank_transfer": "BANK",
    "insurance": "INSR",
    "cheque": "CHQ",
}


def next_payment_reference(db: Session, method: str,
                           now: datetime | None = None) -> str:
    """CASH202610170001 style: method prefix + date + daily sequence."""
    now = now or datetime.utcnow()
    prefix = f"{PAYMENT_REF_PREFIX.get(method, 'PAY')}{now:%Y%m%d}"
    return next_number(
        db,
        doc_type=NumberDocType.PAYMENT_REF,
        prefix=prefix,
        reset_period=NumberResetPeriod.NONE,
        padding=4,
        now=now,
    )
