from __future__ import annotations

from typing import Iterable

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from app.core.config import settings
from app.models.billing import BillingAccount, BillingItem, Payment
from app.services.billing_invoice import resolve_invoice_status
from app.utils.money import Money


def _money(x) -> object:
    # Decimal keeps cents exact in the sheet cell
    if isinstance(x, Money):
        return x.to_decimal()
    return x


def _autosize(ws, n_cols: int, width: int = 18) -> None:
    for col in range(1, n_cols + 1):
        ws.column_dimensions[get_column_letter(col)].width = width


def build_account_statement_excel(fp, account: BillingAccount,
                                  items: Iterable[BillingItem],
                                  payments: Iterable[Payment]) -> None:
    wb = Workbook()

    ws = wb.active
    ws.title = "Summary"
    status = resolve_invoice_status(account.total_amount, account.amount_paid)
    rows = [
        ("Account No", account.account_no),
        ("Patient ID", account.patient_id),
        ("Encounter ID", account.encounter_id),
        ("Account Status", account.status),
        ("Currency", settings.BILLING_CURRENCY),
        ("Total Amount", _money(account.total_amount)),
        ("Amount Paid", _money(account.amount_paid)),
        ("Balance", _money(account.balance)),
        ("Invoice Status", status.value),
    ]
    for r in rows:
        ws.append(list(r))
    _autosize(ws, 2, width=22)

    ws = wb.create_sheet("Items")
    headers = [
        "Item ID", "Type", "Description", "Qty", "Unit Price", "Discount",
        "Net Amount", "Status", "Posted At",
    ]
    ws.append(headers)
    for it in items:
        ws.append([
            it.id,
            it.item_type,
            it.description,
            int(it.quantity),
            _money(it.unit_price),
            _money(it.discount_amount),
            _money(it.net_amount),
            it.status,
            it.created_at,
        ])
    _autosize(ws, len(headers))

    ws = wb.create_sheet("Payments")
    headers = ["Payment ID", "Method", "Reference No", "Amount", "Received By", "Date"]
    ws.append(headers)
    for p in payments:
        ws.append([
            p.id,
            p.method,
            p.reference_no or "",
            _money(p.amount),
            p.received_by or "",
            p.created_at,
        ])
    _autosize(ws, len(headers))

    wb.save(fp)
