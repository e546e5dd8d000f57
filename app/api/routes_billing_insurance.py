# FILE: app/api/routes_billing_insurance.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.billing_insurance import (
    ClaimApproveIn,
    ClaimCreate,
    ClaimListOut,
    ClaimOut,
    ClaimPaidIn,
    ClaimRejectIn,
)
from app.services import billing_insurance as svc

router = APIRouter(prefix="/billing/claims", tags=["Billing Insurance"])


@router.post("", response_model=ClaimOut)
def create_claim(payload: ClaimCreate, db: Session = Depends(get_db)):
    cl = svc.create_claim(
        db,
        invoice_id=payload.invoice_id,
        insurance_provider=payload.insurance_provider,
        policy_number=payload.policy_number,
        claim_amount=payload.claim_amount,
        claim_number=payload.claim_number,
        remarks=payload.remarks,
        created_by=payload.created_by,
    )
    return svc.claim_snapshot(db, cl.id)


@router.get("", response_model=ClaimListOut)
def list_claims(status: Optional[str] = Query(None),
                limit: int = Query(50, ge=1, le=200),
                offset: int = Query(0, ge=0),
                db: Session = Depends(get_db)):
    return svc.list_claims(db, status=status, limit=limit, offset=offset)


@router.get("/{claim_id}", response_model=ClaimOut)
def get_claim(claim_id: int, db: Session = Depends(get_db)):
    return svc.claim_snapshot(db, claim_id)


@router.post("/{claim_id}/submit", response_model=ClaimOut)
def submit_claim(claim_id: int, db: Session = Depends(get_db)):
    svc.submit_claim(db, claim_id)
    return svc.claim_snapshot(db, claim_id)


@router.post("/{claim_id}/approve", response_model=ClaimOut)
def approve_claim(claim_id: int,
                  payload: ClaimApproveIn,
                  db: Session = Depends(get_db)):
    svc.approve_claim(db, claim_id, payload.approved_amount)
    return svc.claim_snapshot(db, claim_id)


@router.post("/{claim_id}/reject", response_model=ClaimOut)
def reject_claim(claim_id: int,
                 payload: ClaimRejectIn,
                 db: Session = Depends(get_db)):
    svc.reject_claim(db, claim_id, payload.reason)
    return svc.claim_snapshot(db, claim_id)


@router.post("/{claim_id}/mark-paid", response_model=ClaimOut)
def mark_claim_paid(claim_id: int,
                    payload: ClaimPaidIn,
                    db: Session = Depends(get_db)):
    svc.mark_claim_paid(
        db,
        claim_id,
        apply_payment=payload.apply_payment,
        received_by=payload.received_by,
        reference_no=payload.reference_no,
    )
    return svc.claim_snapshot(db, claim_id)
