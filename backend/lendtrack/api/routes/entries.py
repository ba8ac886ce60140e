"""
Entry management routes.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status, UploadFile, File, Form
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from datetime import date
from decimal import Decimal
from lendtrack.db.session import get_db
from lendtrack.models.entry import Entry, TransactionType, PaymentStatus, PaymentFrequency, AllocationMode
from lendtrack.schemas.entry import (
    AllocationInput, EntryCreate, EntryUpdate, EntryResponse, EntryPreviewResponse,
    InstallmentTermResponse, AllocationResponse
)
from lendtrack.schemas.person import PersonResponse
from lendtrack.schemas.payment import DeleteResult
from lendtrack.api.dependencies import get_today
from lendtrack.services import entry_service
from lendtrack.services.image_service import store_images
from lendtrack.services.installment_service import describe_terms
from lendtrack.services.status_service import allocation_payment_cap

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/entry", tags=["entries"])

_allocations_adapter = TypeAdapter(List[AllocationInput])


def parse_allocations(raw: Optional[str]) -> Optional[List[AllocationInput]]:
    """Allocations arrive as a JSON array inside the multipart form."""
    if raw is None or not raw.strip():
        return None
    try:
        return _allocations_adapter.validate_json(raw)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid allocations: {e.errors()[0]['msg']}"
        )


def build_allocation_response(allocation) -> AllocationResponse:
    return AllocationResponse(
        id=allocation.id,
        entry_id=allocation.entry_id,
        member_id=allocation.member_id,
        member=PersonResponse.model_validate(allocation.member),
        amount=allocation.amount,
        amount_paid=allocation.amount_paid,
        percent=allocation.percent,
        description=allocation.description or "",
        notes=allocation.notes,
        status=allocation.status,
        max_payment=allocation_payment_cap(allocation.amount, allocation.amount_paid)
    )


def build_term_responses(entry: Entry, today: date) -> List[InstallmentTermResponse]:
    return [
        InstallmentTermResponse(
            id=view.term.id,
            entry_id=view.term.entry_id,
            term_number=view.term.term_number,
            due_date=view.term.due_date,
            status=view.status,
            actions=view.actions,
            skipped=view.term.skipped,
            notes=view.term.notes
        )
        for view in describe_terms(entry, today)
    ]


def build_entry_response(entry: Entry, today: date, warnings: Optional[List[str]] = None) -> EntryResponse:
    """Build entry response with derived term statuses and allocations."""
    return EntryResponse(
        id=entry.id,
        reference_id=entry.reference_id,
        entry_name=entry.entry_name,
        description=entry.description,
        transaction_type=entry.transaction_type,
        lender_id=entry.lender_id,
        lender=PersonResponse.model_validate(entry.lender),
        borrower_id=entry.borrower_id,
        borrower=PersonResponse.model_validate(entry.borrower) if entry.borrower else None,
        borrower_group_id=entry.borrower_group_id,
        borrower_group_name=entry.borrower_group.group_name if entry.borrower_group else None,
        amount_borrowed=entry.amount_borrowed,
        amount_remaining=entry.amount_remaining,
        status=entry.status,
        date_borrowed=entry.date_borrowed,
        date_fully_paid=entry.date_fully_paid,
        notes=entry.notes,
        payment_notes=entry.payment_notes,
        image_urls=entry.image_urls or [],
        start_date=entry.start_date,
        payment_frequency=entry.payment_frequency,
        payment_terms=entry.payment_terms,
        payment_amount_per_term=entry.payment_amount_per_term,
        allocation_mode=entry.allocation_mode,
        terms=build_term_responses(entry, today),
        allocations=[build_allocation_response(a) for a in entry.allocations],
        has_payments=entry.has_payments,
        warnings=warnings or [],
        created_at=entry.created_at,
        updated_at=entry.updated_at
    )


@router.get("", response_model=List[EntryResponse])
async def list_entries(
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    transaction_type: Optional[TransactionType] = None,
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """List entries, optionally filtered by status and transaction type."""
    entries = entry_service.list_entries(db, status=payment_status, transaction_type=transaction_type)
    return [build_entry_response(e, today) for e in entries]


@router.get("/all", response_model=Dict[str, List[EntryResponse]])
async def list_entries_by_type(
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """All entries grouped by transaction type."""
    grouped = entry_service.group_entries_by_type(entry_service.list_entries(db))
    return {
        transaction_type: [build_entry_response(e, today) for e in entries]
        for transaction_type, entries in grouped.items()
    }


@router.post("", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry_name: str = Form(""),
    transaction_type: TransactionType = Form(TransactionType.STRAIGHT),
    lender_id: Optional[int] = Form(None),
    borrower_id: Optional[int] = Form(None),
    borrower_group_id: Optional[int] = Form(None),
    amount_borrowed: Optional[Decimal] = Form(None),
    description: Optional[str] = Form(None),
    date_borrowed: Optional[date] = Form(None),
    notes: Optional[str] = Form(None),
    payment_notes: Optional[str] = Form(None),
    start_date: Optional[date] = Form(None),
    payment_frequency: PaymentFrequency = Form(PaymentFrequency.MONTHLY),
    payment_terms: Optional[int] = Form(None),
    payment_amount_per_term: Optional[Decimal] = Form(None),
    allocation_mode: Optional[AllocationMode] = Form(None),
    allocations: Optional[str] = Form(None),
    image_files: Optional[List[UploadFile]] = File(None),
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Create a straight, installment or group entry (multipart form).
    
    For group entries `allocations` is a JSON array of
    {member_id, percent, amount, description, notes}.
    """
    data = EntryCreate(
        entry_name=entry_name,
        transaction_type=transaction_type,
        lender_id=lender_id,
        borrower_id=borrower_id,
        borrower_group_id=borrower_group_id,
        amount_borrowed=amount_borrowed,
        description=description,
        date_borrowed=date_borrowed,
        notes=notes,
        payment_notes=payment_notes,
        start_date=start_date,
        payment_frequency=payment_frequency,
        payment_terms=payment_terms,
        payment_amount_per_term=payment_amount_per_term,
        allocation_mode=allocation_mode,
        allocations=parse_allocations(allocations) or []
    )
    # Validate before touching the filesystem
    entry_service.validate_new_entry(db, data)
    image_urls = await store_images(image_files)
    
    entry, warnings = entry_service.create_entry(db, data, today, image_urls=image_urls)
    return build_entry_response(entry, today, warnings)


@router.post("/preview", response_model=EntryPreviewResponse)
async def preview_entry(draft: EntryCreate, db: Session = Depends(get_db)):
    """Apply the entry form rules to a draft without saving it.
    
    Returns the normalized lender, per-term amount, computed allocations,
    soft warnings and the first validation error, if any.
    """
    return entry_service.preview_entry(db, draft)


@router.delete("/paid", response_model=DeleteResult)
async def delete_paid_entries(db: Session = Depends(get_db)):
    """Delete every fully paid entry."""
    deleted = entry_service.delete_paid_entries(db)
    return {"message": "Paid entries deleted", "deleted": deleted}


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(
    entry_id: str,
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Get entry by ID."""
    entry = entry_service.get_entry(db, entry_id)
    return build_entry_response(entry, today)


@router.put("/{entry_id}", response_model=EntryResponse)
async def update_entry(
    entry_id: str,
    entry_name: Optional[str] = Form(None),
    transaction_type: Optional[TransactionType] = Form(None),
    lender_id: Optional[int] = Form(None),
    borrower_id: Optional[int] = Form(None),
    borrower_group_id: Optional[int] = Form(None),
    amount_borrowed: Optional[Decimal] = Form(None),
    description: Optional[str] = Form(None),
    date_borrowed: Optional[date] = Form(None),
    notes: Optional[str] = Form(None),
    payment_notes: Optional[str] = Form(None),
    start_date: Optional[date] = Form(None),
    payment_frequency: Optional[PaymentFrequency] = Form(None),
    payment_terms: Optional[int] = Form(None),
    payment_amount_per_term: Optional[Decimal] = Form(None),
    allocation_mode: Optional[AllocationMode] = Form(None),
    allocations: Optional[str] = Form(None),
    image_files: Optional[List[UploadFile]] = File(None),
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Update an entry (multipart form); omitted fields are left unchanged.
    
    Once a payment exists only descriptive fields may change.
    """
    entry = entry_service.get_entry(db, entry_id)
    submitted = {
        "entry_name": entry_name,
        "transaction_type": transaction_type,
        "lender_id": lender_id,
        "borrower_id": borrower_id,
        "borrower_group_id": borrower_group_id,
        "amount_borrowed": amount_borrowed,
        "description": description,
        "date_borrowed": date_borrowed,
        "notes": notes,
        "payment_notes": payment_notes,
        "start_date": start_date,
        "payment_frequency": payment_frequency,
        "payment_terms": payment_terms,
        "payment_amount_per_term": payment_amount_per_term,
        "allocation_mode": allocation_mode,
        "allocations": parse_allocations(allocations),
    }
    update = EntryUpdate(**{k: v for k, v in submitted.items() if v is not None})
    changes = {name: getattr(update, name) for name in update.model_fields_set}
    
    # Validate before touching the filesystem
    entry_service.validate_entry_update(db, entry, changes)
    image_urls = await store_images(image_files)
    
    entry, warnings = entry_service.update_entry(db, entry, changes, today, image_urls=image_urls)
    return build_entry_response(entry, today, warnings)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(entry_id: str, db: Session = Depends(get_db)):
    """Delete an entry with its payments, terms and allocations."""
    entry = entry_service.get_entry(db, entry_id)
    entry_service.delete_entry(db, entry)
