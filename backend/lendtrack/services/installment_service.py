"""
Installment term service: schedule creation, status views and skipping.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import List
from sqlalchemy.orm import Session
from lendtrack.models.entry import Entry
from lendtrack.models.installment import InstallmentTerm, InstallmentStatus
from lendtrack.services.exceptions import TermActionError
from lendtrack.services.schedule_service import build_schedule, next_due_date
from lendtrack.services.status_service import (
    derive_term_status, term_actions, TERM_ACTION_PAY, TERM_ACTION_SKIP
)

logger = logging.getLogger(__name__)


@dataclass
class TermView:
    """A term together with its derived status for a given day."""
    term: InstallmentTerm
    status: InstallmentStatus
    actions: List[str]


def term_status(term: InstallmentTerm, today: date) -> InstallmentStatus:
    """Derived status of a term as of `today`."""
    return derive_term_status(
        start_date=term.entry.start_date if term.entry else None,
        due_date=term.due_date,
        has_payment=len(term.payments) > 0,
        skipped=term.skipped,
        today=today
    )


def describe_terms(entry: Entry, today: date) -> List[TermView]:
    """Terms of an entry in sequence order with status and allowed actions."""
    views = []
    for term in entry.terms:
        status = term_status(term, today)
        views.append(TermView(term=term, status=status, actions=term_actions(status)))
    return views


def create_schedule(entry: Entry):
    """Replace the entry's terms with a fresh schedule from its installment fields."""
    entry.terms = [
        InstallmentTerm(term_number=number, due_date=due_date, skipped=False, notes="")
        for number, due_date in build_schedule(entry.start_date, entry.payment_frequency, entry.payment_terms)
    ]


def ensure_term_payable(term: InstallmentTerm, today: date):
    """Raise unless a payment may be recorded against the term today."""
    status = term_status(term, today)
    if TERM_ACTION_PAY not in term_actions(status):
        raise TermActionError(f"Term {term.term_number} is {status.value} and cannot be paid.")


def skip_term(db: Session, term: InstallmentTerm, today: date) -> InstallmentTerm:
    """
    Skip a term and append a replacement at the end of the schedule.
    
    The skipped term keeps its place permanently. The new term is due one
    payment period after the current last term.
    """
    status = term_status(term, today)
    if TERM_ACTION_SKIP not in term_actions(status):
        raise TermActionError(f"Term {term.term_number} is {status.value} and cannot be skipped.")
    
    entry = term.entry
    last_term = max(entry.terms, key=lambda t: t.term_number)
    
    term.skipped = True
    new_term = InstallmentTerm(
        term_number=last_term.term_number + 1,
        due_date=next_due_date(last_term.due_date, entry.payment_frequency),
        skipped=False,
        notes=""
    )
    entry.terms.append(new_term)
    entry.payment_terms = len(entry.terms)
    
    db.commit()
    db.refresh(new_term)
    logger.info(
        "Skipped term %s of entry %s; appended term %s due %s",
        term.term_number, entry.id, new_term.term_number, new_term.due_date
    )
    return new_term


def update_term_notes(db: Session, term: InstallmentTerm, notes: str) -> InstallmentTerm:
    """Edit the notes of one term."""
    term.notes = notes
    db.commit()
    db.refresh(term)
    return term
