"""
Group payment allocation routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from lendtrack.db.session import get_db
from lendtrack.models.allocation import PaymentAllocation
from lendtrack.schemas.entry import AllocationResponse, AllocationDetailsUpdate
from lendtrack.api.routes.entries import build_allocation_response
from lendtrack.services.allocation_service import update_allocation_details
from lendtrack.services.entry_service import get_entry

router = APIRouter(prefix="/allocations", tags=["allocations"])


@router.get("/{entry_id}", response_model=List[AllocationResponse])
async def get_allocations(entry_id: str, db: Session = Depends(get_db)):
    """Get the allocations of a group entry."""
    entry = get_entry(db, entry_id)
    return [build_allocation_response(a) for a in entry.allocations]


@router.put("/{allocation_id}", response_model=AllocationResponse)
async def update_allocation(
    allocation_id: int,
    details: AllocationDetailsUpdate,
    db: Session = Depends(get_db)
):
    """Update the description and notes of an allocation."""
    allocation = db.query(PaymentAllocation).filter(PaymentAllocation.id == allocation_id).first()
    if not allocation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment allocation not found"
        )
    allocation = update_allocation_details(db, allocation, details.description, details.notes)
    return build_allocation_response(allocation)
