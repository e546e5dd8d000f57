# FILE: app/api/routes_billing.py
from __future__ import annotations

import io
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.billing import (
    AccountCreate,
    AccountOut,
    AccountVerifyOut,
    InvoiceCreate,
    InvoiceListOut,
    InvoiceOut,
    ItemIn,
    ItemOut,
    VoidItemIn,
)
from app.services import billing_account, billing_invoice, billing_ledger
from app.services.billing_payment_service import list_payments
from app.services.excel_export import build_account_statement_excel

router = APIRouter(prefix="/billing", tags=["Billing"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.post("/accounts", response_model=AccountOut)
def open_account(payload: AccountCreate, db: Session = Depends(get_db)):
    acc = billing_account.open_account(
        db,
        patient_id=payload.patient_id,
        encounter_id=payload.encounter_id,
        created_by=payload.created_by,
    )
    return billing_account.account_snapshot(db, acc.id)


@router.get("/accounts/{account_id}", response_model=AccountOut)
def get_account(account_id: int, db: Session = Depends(get_db)):
    return billing_account.account_snapshot(db, account_id)


@router.get("/accounts/{account_id}/verify", response_model=AccountVerifyOut)
def verify_account(account_id: int, db: Session = Depends(get_db)):
    return billing_account.verify_account(db, account_id)


@router.post("/accounts/{account_id}/close", response_model=AccountOut)
def close_account(account_id: int, db: Session = Depends(get_db)):
    billing_account.close_account(db, account_id)
    return billing_account.account_snapshot(db, account_id)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@router.post("/accounts/{account_id}/items", response_model=ItemOut)
def add_item(account_id: int, payload: ItemIn, db: Session = Depends(get_db)):
    return billing_ledger.add_item(
        db,
        account_id,
        item_type=payload.item_type,
        description=payload.description,
        quantity=payload.quantity,
        unit_price=payload.unit_price,
        discount_amount=payload.discount_amount,
        service_code=payload.service_code,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        created_by=payload.created_by,
    )


@router.get("/accounts/{account_id}/items", response_model=List[ItemOut])
def list_items(account_id: int,
               include_voided: bool = Query(default=True),
               db: Session = Depends(get_db)):
    return billing_ledger.list_items(db, account_id, include_voided=include_voided)


@router.post("/accounts/{account_id}/items/{item_id}/void", response_model=ItemOut)
def void_item(account_id: int,
              item_id: int,
              payload: VoidItemIn,
              db: Session = Depends(get_db)):
    return billing_ledger.void_item(db,
                                    account_id,
                                    item_id,
                                    reason=payload.reason,
                                    voided_by=payload.voided_by)


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


@router.post("/accounts/{account_id}/invoice", response_model=InvoiceOut)
def generate_invoice(account_id: int,
                     payload: InvoiceCreate,
                     db: Session = Depends(get_db)):
    inv = billing_invoice.generate_invoice(db,
                                           account_id,
                                           created_by=payload.created_by)
    return billing_invoice.invoice_snapshot(db, inv.id)


@router.get("/invoices", response_model=InvoiceListOut)
def list_invoices(status: Optional[str] = Query(None),
                  search: Optional[str] = Query(None),
                  date_from: Optional[date] = Query(None),
                  date_to: Optional[date] = Query(None),
                  limit: int = Query(50, ge=1, le=200),
                  offset: int = Query(0, ge=0),
                  db: Session = Depends(get_db)):
    return billing_invoice.list_invoices(db,
                                         status=status,
                                         search=search,
                                         date_from=date_from,
                                         date_to=date_to,
                                         limit=limit,
                                         offset=offset)


@router.get("/invoices/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    return billing_invoice.invoice_snapshot(db, invoice_id)


# ---------------------------------------------------------------------------
# Statement export
# ---------------------------------------------------------------------------


@router.get("/accounts/{account_id}/statement.xlsx")
def account_statement(account_id: int, db: Session = Depends(get_db)):
    acc = billing_account.get_account(db, account_id)
    items = billing_ledger.list_items(db, acc.id)
    payments = list_payments(db, acc.id)

    buf = io.BytesIO()
    build_account_statement_excel(buf, acc, items, payments)
    buf.seek(0)
    logger.info("Statement exported: %s (%s items, %s payments)",
                acc.account_no, len(items), len(payments))

    filename = f"statement_{acc.account_no}.xlsx"
    return StreamingResponse(
        buf,
        media_type=
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
