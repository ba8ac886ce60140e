"""
Payment routes.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from decimal import Decimal
from lendtrack.db.session import get_db
from lendtrack.models.payment import Payment
from lendtrack.models.allocation import PaymentAllocation
from lendtrack.schemas.payment import PaymentResponse, DeleteResult
from lendtrack.api.dependencies import get_today
from lendtrack.services import payment_service
from lendtrack.services.entry_service import get_entry
from lendtrack.services.image_service import store_images

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/all", response_model=List[PaymentResponse])
async def list_payments(db: Session = Depends(get_db)):
    """List every payment, newest first."""
    return db.query(Payment).order_by(Payment.payment_date.desc(), Payment.id.desc()).all()


@router.delete("/all", response_model=DeleteResult)
async def delete_all_payments(
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Delete every payment; all entries are re-derived."""
    deleted = payment_service.delete_all_payments(db, today)
    return {"message": "All payments deleted", "deleted": deleted}


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    entry_id: str = Form(...),
    payee_id: int = Form(...),
    payment_amount: Decimal = Form(...),
    payment_date: Optional[date] = Form(None),
    notes: Optional[str] = Form(None),
    term_id: Optional[int] = Form(None),
    allocation_id: Optional[int] = Form(None),
    image_files: Optional[List[UploadFile]] = File(None),
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Record a payment (multipart form) against an entry, a term or an allocation."""
    # Validate before touching the filesystem
    payment_service.validate_payment(
        db,
        entry_id=entry_id,
        payee_id=payee_id,
        payment_amount=payment_amount,
        today=today,
        term_id=term_id,
        allocation_id=allocation_id
    )
    image_urls = await store_images(image_files)
    return payment_service.create_payment(
        db,
        entry_id=entry_id,
        payee_id=payee_id,
        payment_amount=payment_amount,
        today=today,
        payment_date=payment_date,
        notes=notes,
        term_id=term_id,
        allocation_id=allocation_id,
        image_urls=image_urls
    )


@router.get("/entry/{entry_id}", response_model=List[PaymentResponse])
async def get_payments_for_entry(entry_id: str, db: Session = Depends(get_db)):
    """Get all payments of an entry, including term and allocation payments."""
    entry = get_entry(db, entry_id)
    return entry.payments


@router.delete("/entry/{entry_id}", response_model=DeleteResult)
async def delete_payments_for_entry(
    entry_id: str,
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Delete all payments of an entry."""
    entry = get_entry(db, entry_id)
    deleted = payment_service.delete_payments_for_entry(db, entry, today)
    return {"message": "Entry payments deleted", "deleted": deleted}


@router.get("/by/{person_id}", response_model=List[PaymentResponse])
async def get_payments_by_payee(person_id: int, db: Session = Depends(get_db)):
    """Get all payments made by one person."""
    return db.query(Payment).filter(Payment.payee_id == person_id).order_by(Payment.id).all()


@router.delete("/by/{person_id}", response_model=DeleteResult)
async def delete_payments_by_payee(
    person_id: int,
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Delete all payments made by one person."""
    deleted = payment_service.delete_payments_for_payee(db, person_id, today)
    return {"message": "Payee payments deleted", "deleted": deleted}


@router.get("/allocation/{entry_id}/{member_id}", response_model=List[PaymentResponse])
async def get_payments_for_allocation(entry_id: str, member_id: int, db: Session = Depends(get_db)):
    """Get the payments recorded against one member's allocation."""
    allocation = db.query(PaymentAllocation).filter(
        PaymentAllocation.entry_id == entry_id,
        PaymentAllocation.member_id == member_id
    ).first()
    if not allocation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment allocation not found"
        )
    return db.query(Payment).filter(Payment.allocation_id == allocation.id).order_by(Payment.id).all()


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: int, db: Session = Depends(get_db)):
    """Get payment by ID."""
    return payment_service.get_payment(db, payment_id)


@router.put("/{payment_id}")
async def update_payment(payment_id: int):
    """Payments are immutable."""
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Payment update not supported. Delete and create new payment instead."
    )


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: int,
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Delete a payment; the entry's balance and status are re-derived."""
    payment = payment_service.get_payment(db, payment_id)
    payment_service.delete_payment(db, payment, today)
