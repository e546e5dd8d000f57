from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.billing import BillingSummaryOut, OutstandingOut, PaymentStatsOut
from app.schemas.billing_insurance import ClaimStatsOut
from app.services import billing_reports

router = APIRouter(prefix="/billing", tags=["Billing Reports"])


@router.get("/encounters/{encounter_id}/summary", response_model=BillingSummaryOut)
def encounter_summary(encounter_id: int, db: Session = Depends(get_db)):
    return billing_reports.billing_summary(db, encounter_id)


@router.get("/reports/payments", response_model=PaymentStatsOut)
def payments_report(on: Optional[date] = Query(default=None),
                    db: Session = Depends(get_db)):
    return billing_reports.payment_stats(db, today=on)


@router.get("/reports/claims", response_model=ClaimStatsOut)
def claims_report(db: Session = Depends(get_db)):
    return billing_reports.claim_stats(db)


@router.get("/reports/outstanding", response_model=OutstandingOut)
def outstanding_report(db: Session = Depends(get_db)):
    return billing_reports.outstanding_summary(db)
