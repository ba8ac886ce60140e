"""
Installment term routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date
from lendtrack.db.session import get_db
from lendtrack.models.entry import TransactionType
from lendtrack.models.installment import InstallmentTerm
from lendtrack.schemas.entry import InstallmentTermResponse, TermNotesUpdate
from lendtrack.api.dependencies import get_today
from lendtrack.api.routes.entries import build_term_responses
from lendtrack.services import installment_service
from lendtrack.services.entry_service import get_entry

router = APIRouter(prefix="/installments", tags=["installments"])


def get_term_or_404(term_id: int, db: Session) -> InstallmentTerm:
    """Fetch a term or raise 404."""
    term = db.query(InstallmentTerm).filter(InstallmentTerm.id == term_id).first()
    if not term:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Installment term not found"
        )
    return term


def _term_response(term: InstallmentTerm, today: date) -> InstallmentTermResponse:
    return next(t for t in build_term_responses(term.entry, today) if t.id == term.id)


@router.get("/{entry_id}/terms", response_model=List[InstallmentTermResponse])
async def get_terms(
    entry_id: str,
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Get the term schedule of an installment entry with derived statuses."""
    entry = get_entry(db, entry_id)
    if entry.transaction_type != TransactionType.INSTALLMENT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Entry is not an installment entry"
        )
    return build_term_responses(entry, today)


@router.post("/terms/{term_id}/skip", response_model=List[InstallmentTermResponse])
async def skip_term(
    term_id: int,
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Skip a term; a replacement term is appended to the schedule."""
    term = get_term_or_404(term_id, db)
    installment_service.skip_term(db, term, today)
    return build_term_responses(term.entry, today)


@router.patch("/terms/{term_id}", response_model=InstallmentTermResponse)
async def update_term_notes(
    term_id: int,
    notes_data: TermNotesUpdate,
    today: date = Depends(get_today),
    db: Session = Depends(get_db)
):
    """Edit the notes of a term."""
    term = get_term_or_404(term_id, db)
    installment_service.update_term_notes(db, term, notes_data.notes)
    return _term_response(term, today)
