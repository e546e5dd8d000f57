from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.billing_payments import PaymentIn, PaymentListOut, PaymentOut
from app.services.billing_payment_service import (
    apply_payment,
    list_payments,
    search_payments,
)

router = APIRouter(prefix="/billing", tags=["Billing Payments"])


@router.post("/accounts/{account_id}/payments", response_model=PaymentOut)
def pay(account_id: int, inp: PaymentIn, db: Session = Depends(get_db)):
    return apply_payment(
        db,
        account_id,
        amount=inp.amount,
        method=inp.method,
        reference_no=inp.reference_no,
        received_by=inp.received_by,
        notes=inp.notes,
    )


@router.get("/accounts/{account_id}/payments", response_model=List[PaymentOut])
def payments(account_id: int, db: Session = Depends(get_db)):
    return list_payments(db, account_id)


@router.get("/payments", response_model=PaymentListOut)
def all_payments(
        method: Optional[str] = Query(None),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        reference: Optional[str] = Query(None),
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
):
    return search_payments(
        db,
        method=method,
        date_from=date_from,
        date_to=date_to,
        reference=reference,
        limit=limit,
        offset=offset,
    )
