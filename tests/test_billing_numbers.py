"""Tests for document number series."""

from datetime import datetime

from app.models.billing import NumberDocType, NumberResetPeriod
from app.services.billing_numbers import (
    account_number,
    next_number,
    next_payment_reference,
)


def test_sequence_increments(db):
    got = [
        next_number(db, doc_type=NumberDocType.INVOICE, prefix="INV-")
        for _ in range(3)
    ]
    assert got == ["INV-000001", "INV-000002", "INV-000003"]


def test_yearly_series_resets(db):
    y1 = datetime(2025, 12, 31, 23, 59)
    y2 = datetime(2026, 1, 1, 0, 1)
    kw = dict(doc_type=NumberDocType.CLAIM, prefix="CLM-",
              reset_period=NumberResetPeriod.YEAR)
    assert next_number(db, now=y1, **kw) == "CLM-000001"
    assert next_number(db, now=y1, **kw) == "CLM-000002"
    assert next_number(db, now=y2, **kw) == "CLM-000001"


def test_monthly_series_resets(db):
    kw = dict(doc_type=NumberDocType.INVOICE, prefix="M-",
              reset_period=NumberResetPeriod.MONTH, padding=3)
    assert next_number(db, now=datetime(2026, 3, 5), **kw) == "M-001"
    assert next_number(db, now=datetime(2026, 3, 28), **kw) == "M-002"
    assert next_number(db, now=datetime(2026, 4, 1), **kw) == "M-001"


def test_series_are_independent(db):
    assert next_number(db, doc_type=NumberDocType.INVOICE, prefix="INV-") == "INV-000001"
    assert next_number(db, doc_type=NumberDocType.CLAIM, prefix="CLM-") == "CLM-000001"


def test_payment_reference_per_method_and_day(db):
    day = datetime(2026, 10, 17, 9, 30)
    assert next_payment_reference(db, "cash", now=day) == "CASH202610170001"
    assert next_payment_reference(db, "cash", now=day) == "CASH202610170002"
    assert next_payment_reference(db, "mpesa", now=day) == "MPSA202610170001"
    assert next_payment_reference(db, "cash", now=datetime(2026, 10, 18)) == "CASH202610180001"


def test_account_number():
    assert account_number(123, prefix="BA", padding=6) == "BA000123"
    assert account_number(12345678, prefix="BA", padding=6) == "BA12345678"
