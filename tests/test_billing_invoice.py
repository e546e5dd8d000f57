"""Tests for invoice status resolution and invoice generation."""

from datetime import date, timedelta

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.models.billing import ItemStatus
from app.services.billing_invoice import (
    InvoiceStatus,
    generate_invoice,
    invoice_snapshot,
    list_invoices,
    resolve_invoice_status,
)
from app.services.billing_ledger import add_item, list_items, void_item
from app.services.billing_payment_service import apply_payment
from app.utils.money import Money


def M(s):
    return Money.parse(s)


class TestResolveInvoiceStatus:

    @pytest.mark.parametrize(
        "total,paid,expected",
        [
            ("5000.00", "0", InvoiceStatus.UNPAID),
            ("5000.00", "0.01", InvoiceStatus.PARTIAL),
            ("5000.00", "4999.99", InvoiceStatus.PARTIAL),
            ("5000.00", "5000.00", InvoiceStatus.PAID),
            # nothing owed yet counts as settled
            ("0", "0", InvoiceStatus.PAID),
        ],
    )
    def test_status(self, total, paid, expected):
        assert resolve_invoice_status(M(total), M(paid)) is expected


class TestGenerateInvoice:

    def test_requires_items(self, db, account):
        with pytest.raises(ValidationError):
            generate_invoice(db, account.id)

    def test_voided_items_do_not_count(self, db, account):
        item = add_item(db, account.id, item_type="imaging", description="Chest X-ray",
                        quantity=1, unit_price="2500.00")
        void_item(db, account.id, item.id)
        with pytest.raises(ValidationError):
            generate_invoice(db, account.id)

    def test_generate_marks_items_billed(self, db, charged_account):
        inv = generate_invoice(db, charged_account.id, created_by="cashier-1")
        assert inv.invoice_number.startswith("INV-")
        assert inv.account_id == charged_account.id
        assert inv.patient_id == charged_account.patient_id
        assert all(i.status == ItemStatus.BILLED.value
                   for i in list_items(db, charged_account.id))

    def test_generate_is_idempotent(self, db, charged_account):
        first = generate_invoice(db, charged_account.id)
        add_item(db, charged_account.id, item_type="consumable",
                 description="Syringe", quantity=4, unit_price="20.00")
        second = generate_invoice(db, charged_account.id)

        assert second.id == first.id
        assert second.invoice_number == first.invoice_number
        assert all(i.status == ItemStatus.BILLED.value
                   for i in list_items(db, charged_account.id))

    def test_invoice_numbers_are_sequential(self, db, charged_account):
        from app.services.billing_account import open_account

        other = open_account(db, patient_id=9, encounter_id=303)
        add_item(db, other.id, item_type="other", description="Medical report",
                 quantity=1, unit_price="500.00")

        a = generate_invoice(db, charged_account.id)
        b = generate_invoice(db, other.id)
        assert int(b.invoice_number.split("-")[1]) == int(a.invoice_number.split("-")[1]) + 1

    def test_snapshot_reads_account_figures(self, db, charged_account):
        inv = generate_invoice(db, charged_account.id)
        snap = invoice_snapshot(db, inv.id)
        assert snap["status"] == "unpaid"
        assert snap["total_amount"] == M("5000.00")

        apply_payment(db, charged_account.id, amount="2000.00", method="cash")
        snap = invoice_snapshot(db, inv.id)
        assert snap["status"] == "partial"
        assert snap["balance"] == M("3000.00")

    def test_unknown_invoice(self, db):
        with pytest.raises(NotFoundError):
            invoice_snapshot(db, 77)


class TestListInvoices:

    @pytest.fixture
    def three_invoices(self, db, charged_account):
        """unpaid (BA000101), partial (BA000202), paid (BA000303)."""
        from app.services.billing_account import open_account

        unpaid = generate_invoice(db, charged_account.id)

        acc = open_account(db, patient_id=8, encounter_id=202)
        add_item(db, acc.id, item_type="lab_test", description="CBC",
                 quantity=1, unit_price="800.00")
        partial = generate_invoice(db, acc.id)
        apply_payment(db, acc.id, amount="300.00", method="mpesa")

        acc = open_account(db, patient_id=9, encounter_id=303)
        add_item(db, acc.id, item_type="imaging", description="Ultrasound",
                 quantity=1, unit_price="2500.00")
        paid = generate_invoice(db, acc.id)
        apply_payment(db, acc.id, amount="2500.00", method="card")
        return unpaid, partial, paid

    def test_all_newest_first(self, db, three_invoices):
        unpaid, partial, paid = three_invoices
        res = list_invoices(db)
        assert res["total"] == 3
        assert [r["id"] for r in res["items"]] == [paid.id, partial.id, unpaid.id]
        assert res["by_status"] == {"paid": 1, "partial": 1, "unpaid": 1}

    @pytest.mark.parametrize("status,index", [("unpaid", 0), ("partial", 1), ("paid", 2)])
    def test_status_is_resolved_from_figures(self, db, three_invoices, status, index):
        res = list_invoices(db, status=status)
        assert [r["id"] for r in res["items"]] == [three_invoices[index].id]
        assert res["items"][0]["status"] == status

    def test_status_follows_later_payments(self, db, three_invoices):
        unpaid = three_invoices[0]
        apply_payment(db, unpaid.account_id, amount="5000.00", method="cash")
        assert list_invoices(db, status="unpaid")["total"] == 0
        assert list_invoices(db, status="paid")["total"] == 2

    def test_search_by_account_or_invoice_number(self, db, three_invoices):
        partial = three_invoices[1]
        assert [r["id"] for r in list_invoices(db, search="BA000202")["items"]] == [partial.id]
        assert list_invoices(db, search=partial.invoice_number)["total"] == 1

    def test_date_range(self, db, three_invoices):
        today = date.today()
        assert list_invoices(db, date_from=today - timedelta(days=1),
                             date_to=today + timedelta(days=1))["total"] == 3
        assert list_invoices(db, date_to=today - timedelta(days=30))["total"] == 0

    def test_paging(self, db, three_invoices):
        res = list_invoices(db, limit=2, offset=2)
        assert res["total"] == 3
        assert [r["id"] for r in res["items"]] == [three_invoices[0].id]

    @pytest.mark.parametrize("kwargs", [
        {"status": "overdue"},
        {"date_from": date(2026, 2, 1), "date_to": date(2026, 1, 1)},
    ])
    def test_bad_filters(self, db, kwargs):
        with pytest.raises(ValidationError):
            list_invoices(db, **kwargs)
