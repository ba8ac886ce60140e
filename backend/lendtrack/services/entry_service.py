"""
Entry service: validation, creation, editing and deletion of entries.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from lendtrack.core.utils import format_date_yymmdd, to_money
from lendtrack.models.entry import Entry, TransactionType, PaymentStatus, AllocationMode
from lendtrack.models.person import Person
from lendtrack.models.group import Group
from lendtrack.models.allocation import PaymentAllocation
from lendtrack.schemas.entry import EntryCreate
from lendtrack.services.exceptions import NotFoundError, EntryValidationError, FieldLockedError
from lendtrack.services.allocation_service import (
    AllocationShare, shares_from_inputs, reallocate, allocation_warning
)
from lendtrack.services.installment_service import create_schedule
from lendtrack.services.payment_service import refresh_entry_ledger
from lendtrack.services.schedule_service import default_amount_per_term

logger = logging.getLogger(__name__)

PARTY_COLLISION_WARNING = "Borrower and lender cannot be the same person. Lender has been cleared."

# Frozen once any payment exists, with the label used in error messages
LOCKED_FIELDS = {
    "amount_borrowed": "Amount borrowed",
    "lender_id": "Lender",
    "payment_terms": "Payment terms",
    "payment_frequency": "Payment frequency",
    "payment_amount_per_term": "Payment amount per term",
    "start_date": "Installment start date",
    "borrower_id": "Borrower",
    "borrower_group_id": "Borrower group",
    "allocation_mode": "Allocation mode",
    "allocations": "Payment allocations",
}

SCHEDULE_FIELDS = {"amount_borrowed", "payment_terms", "payment_frequency", "payment_amount_per_term", "start_date"}
SPLIT_FIELDS = {"amount_borrowed", "borrower_group_id", "allocation_mode", "allocations"}
EDITABLE_FIELDS = ("entry_name", "description", "notes", "payment_notes", "date_borrowed")


@dataclass
class Parties:
    """Resolved lender and borrower of a validated entry."""
    lender: Person
    borrower: Optional[Person] = None
    group: Optional[Group] = None


@dataclass
class EntryPreview:
    """Result of running the entry form rules without saving anything."""
    lender_id: Optional[int]
    payment_amount_per_term: Optional[Decimal] = None
    allocations: List[AllocationShare] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def get_entry(db: Session, entry_id: str) -> Entry:
    entry = db.query(Entry).filter(Entry.id == entry_id).first()
    if not entry:
        raise NotFoundError("Entry not found")
    return entry


def generate_reference_id(today: date) -> str:
    """Human readable reference such as 240115-3FA2C9."""
    return f"{format_date_yymmdd(today)}-{uuid.uuid4().hex[:6].upper()}"


def resolve_party_collision(
    transaction_type: TransactionType,
    borrower_id: Optional[int],
    lender_id: Optional[int]
) -> Tuple[Optional[int], Optional[str]]:
    """When a person borrower equals the lender, clear the lender and explain why."""
    if transaction_type != TransactionType.GROUP and borrower_id and lender_id and borrower_id == lender_id:
        return None, PARTY_COLLISION_WARNING
    return lender_id, None


def _is_positive(value) -> bool:
    return value is not None and Decimal(value) > 0


def validate_new_entry(db: Session, data) -> Parties:
    """
    Validate entry data before anything is written.
    
    Checks run in form order and the first failure is raised as
    EntryValidationError.
    """
    is_group = data.transaction_type == TransactionType.GROUP
    
    if not (data.entry_name or "").strip():
        raise EntryValidationError("Entry name is required.")
    borrower_ref = data.borrower_group_id if is_group else data.borrower_id
    if not borrower_ref:
        raise EntryValidationError("Borrower is required.")
    if not data.lender_id:
        raise EntryValidationError("Lender is required.")
    if not is_group and data.borrower_id == data.lender_id:
        raise EntryValidationError("Borrower and lender cannot be the same person.")
    if not _is_positive(data.amount_borrowed):
        raise EntryValidationError("Amount borrowed must be a positive number.")
    
    if data.transaction_type == TransactionType.INSTALLMENT:
        if not data.start_date:
            raise EntryValidationError("Installment start date is required.")
        if not data.payment_terms or data.payment_terms <= 0:
            raise EntryValidationError("Payment terms must be a positive number.")
        if data.payment_amount_per_term is not None and not _is_positive(data.payment_amount_per_term):
            raise EntryValidationError("Payment amount per term must be a positive number.")
    
    if is_group and data.borrower_id:
        raise EntryValidationError("Group entries are borrowed by a group, not a person.")
    if not is_group and data.borrower_group_id:
        raise EntryValidationError("Only group entries can be borrowed by a group.")
    
    lender = db.query(Person).filter(Person.id == data.lender_id).first()
    if not lender:
        raise EntryValidationError("Lender not found.")
    
    if is_group:
        group = db.query(Group).filter(Group.id == data.borrower_group_id).first()
        if not group:
            raise EntryValidationError("Borrower group not found.")
        if lender.id in group.member_ids:
            raise EntryValidationError("Lender cannot be a member of the borrowing group.")
        if not group.member_ids:
            raise EntryValidationError("Borrower group has no members.")
        return Parties(lender=lender, group=group)
    
    borrower = db.query(Person).filter(Person.id == data.borrower_id).first()
    if not borrower:
        raise EntryValidationError("Borrower not found.")
    return Parties(lender=lender, borrower=borrower)


def _build_allocations(entry: Entry, group: Group, mode: AllocationMode, inputs) -> Optional[str]:
    """Split the entry across the group's current members; returns a soft warning if any."""
    shares = shares_from_inputs(entry.amount_borrowed, group.member_ids, mode, inputs)
    entry.allocation_mode = mode
    entry.allocations = [
        PaymentAllocation(
            member_id=share.member_id,
            amount=share.amount,
            amount_paid=Decimal("0.00"),
            percent=share.percent,
            description=share.description,
            notes=share.notes
        )
        for share in shares
    ]
    return allocation_warning(mode, entry.amount_borrowed, shares)


def create_entry(
    db: Session,
    data,
    today: date,
    image_urls: Optional[List[str]] = None
) -> Tuple[Entry, List[str]]:
    """Create an entry with its installment schedule or group allocations.
    
    Returns the entry and any non-blocking warnings.
    """
    parties = validate_new_entry(db, data)
    amount = to_money(data.amount_borrowed)
    warnings = []
    
    entry = Entry(
        reference_id=generate_reference_id(today),
        entry_name=data.entry_name.strip(),
        description=data.description,
        transaction_type=data.transaction_type,
        lender_id=parties.lender.id,
        borrower_id=parties.borrower.id if parties.borrower else None,
        borrower_group_id=parties.group.id if parties.group else None,
        amount_borrowed=amount,
        amount_remaining=amount,
        status=PaymentStatus.UNPAID,
        date_borrowed=data.date_borrowed,
        notes=data.notes,
        payment_notes=data.payment_notes,
        image_urls=image_urls or []
    )
    
    if data.transaction_type == TransactionType.INSTALLMENT:
        entry.start_date = data.start_date
        entry.payment_frequency = data.payment_frequency
        entry.payment_terms = data.payment_terms
        entry.payment_amount_per_term = (
            to_money(data.payment_amount_per_term)
            if data.payment_amount_per_term is not None
            else default_amount_per_term(amount, data.payment_terms)
        )
        create_schedule(entry)
    elif data.transaction_type == TransactionType.GROUP:
        warning = _build_allocations(
            entry, parties.group, data.allocation_mode or AllocationMode.EQUAL, data.allocations
        )
        if warning:
            warnings.append(warning)
    
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("Created %s entry %s (%s) for %s", entry.transaction_type.value, entry.id, entry.reference_id, amount)
    return entry, warnings


def _current_values(entry: Entry) -> Dict:
    return {
        "entry_name": entry.entry_name,
        "description": entry.description,
        "transaction_type": entry.transaction_type,
        "lender_id": entry.lender_id,
        "borrower_id": entry.borrower_id,
        "borrower_group_id": entry.borrower_group_id,
        "amount_borrowed": entry.amount_borrowed,
        "date_borrowed": entry.date_borrowed,
        "notes": entry.notes,
        "payment_notes": entry.payment_notes,
        "start_date": entry.start_date,
        "payment_frequency": entry.payment_frequency,
        "payment_terms": entry.payment_terms,
        "payment_amount_per_term": entry.payment_amount_per_term,
        "allocation_mode": entry.allocation_mode,
        "allocations": [],
    }


def _changed_fields(entry: Entry, changes: Dict) -> Dict:
    """Submitted fields whose value differs from what is stored."""
    current = _current_values(entry)
    changed = {}
    for name, value in changes.items():
        if name == "allocations":
            if value:
                changed[name] = value
            continue
        existing = current.get(name)
        if isinstance(existing, Decimal) and value is not None:
            if to_money(existing) != to_money(value):
                changed[name] = value
        elif existing != value:
            changed[name] = value
    return changed


def check_field_lock(entry: Entry, changes: Dict):
    """
    Reject changes to frozen fields.
    
    The transaction type can never change. Monetary, party and
    schedule-defining fields are frozen as soon as any payment exists, and
    the schedule is also frozen once a term has been skipped.
    """
    changed = _changed_fields(entry, changes)
    if "transaction_type" in changed:
        raise FieldLockedError("Transaction type cannot be changed after creation.")
    if entry.has_payments:
        for name, label in LOCKED_FIELDS.items():
            if name in changed:
                raise FieldLockedError(f"{label} cannot be changed once payments have been recorded.")
    if entry.has_skipped_terms:
        for name in SCHEDULE_FIELDS:
            if name in changed:
                raise FieldLockedError(f"{LOCKED_FIELDS[name]} cannot be changed once a term has been skipped.")


def validate_entry_update(db: Session, entry: Entry, changes: Dict) -> Tuple[Dict, Dict, Parties]:
    """
    Check an edit without applying it.
    
    The field lock is checked before any other validation. Returns the
    fields that actually change, the merged entry values and the resolved
    parties.
    """
    check_field_lock(entry, changes)
    changed = _changed_fields(entry, changes)
    
    merged = _current_values(entry)
    merged.update(changes)
    if "payment_amount_per_term" not in changes and changed.keys() & {"amount_borrowed", "payment_terms"}:
        # Recomputed unless the user overrode it in this edit
        merged["payment_amount_per_term"] = None
    parties = validate_new_entry(db, EntryCreate(**{k: v for k, v in merged.items() if v is not None}))
    return changed, merged, parties


def update_entry(
    db: Session,
    entry: Entry,
    changes: Dict,
    today: date,
    image_urls: Optional[List[str]] = None
) -> Tuple[Entry, List[str]]:
    """
    Apply an edit to an entry.
    
    `changes` holds only the submitted fields. Until the first payment,
    schedule or split changes rebuild the terms or allocations.
    """
    changed, merged, parties = validate_entry_update(db, entry, changes)
    warnings = []
    
    for name in EDITABLE_FIELDS:
        if name in changes:
            setattr(entry, name, changes[name])
    if "entry_name" in changes:
        entry.entry_name = changes["entry_name"].strip()

    if "lender_id" in changed:
        entry.lender_id = parties.lender.id

    if "amount_borrowed" in changed:
        entry.amount_borrowed = to_money(changed["amount_borrowed"])

    if entry.transaction_type != TransactionType.GROUP and "borrower_id" in changed:
        entry.borrower_id = parties.borrower.id

    if entry.transaction_type == TransactionType.INSTALLMENT:
        if changed.keys() & SCHEDULE_FIELDS:
            entry.start_date = merged["start_date"]
            entry.payment_frequency = merged["payment_frequency"]
            entry.payment_terms = merged["payment_terms"]
            entry.payment_amount_per_term = (
                to_money(merged["payment_amount_per_term"])
                if merged["payment_amount_per_term"] is not None
                else default_amount_per_term(entry.amount_borrowed, entry.payment_terms)
            )
            create_schedule(entry)
    
    if entry.transaction_type == TransactionType.GROUP and changed.keys() & SPLIT_FIELDS:
        entry.borrower_group_id = parties.group.id
        mode = merged["allocation_mode"] or AllocationMode.EQUAL
        inputs = merged["allocations"]
        if not inputs and "allocation_mode" not in changed and "borrower_group_id" not in changed:
            # Same mode, same group: keep each member's percent/amount and re-derive
            inputs = list(entry.allocations)
        warning = _build_allocations(entry, parties.group, mode, inputs)
        if warning:
            warnings.append(warning)
    
    if image_urls:
        entry.image_urls = list(entry.image_urls or []) + image_urls
    
    refresh_entry_ledger(entry, today)
    db.commit()
    db.refresh(entry)
    logger.info("Updated entry %s (%s)", entry.id, ", ".join(sorted(changed)) or "no changes")
    return entry, warnings


def preview_entry(db: Session, draft) -> EntryPreview:
    """Run the entry form rules on a draft without persisting it."""
    lender_id, collision = resolve_party_collision(draft.transaction_type, draft.borrower_id, draft.lender_id)
    preview = EntryPreview(lender_id=lender_id)
    if collision:
        preview.warnings.append(collision)
    draft = draft.model_copy(update={"lender_id": lender_id})
    
    amount = draft.amount_borrowed if _is_positive(draft.amount_borrowed) else None
    
    if draft.transaction_type == TransactionType.INSTALLMENT:
        if draft.payment_amount_per_term is not None:
            preview.payment_amount_per_term = to_money(draft.payment_amount_per_term)
        elif amount and draft.payment_terms and draft.payment_terms > 0:
            preview.payment_amount_per_term = default_amount_per_term(amount, draft.payment_terms)
    
    if draft.transaction_type == TransactionType.GROUP and amount and draft.allocation_mode:
        group = db.query(Group).filter(Group.id == draft.borrower_group_id).first() if draft.borrower_group_id else None
        if group and group.member_ids:
            try:
                if draft.allocations:
                    preview.allocations = shares_from_inputs(
                        amount, group.member_ids, draft.allocation_mode, draft.allocations
                    )
                else:
                    preview.allocations = reallocate(amount, group.member_ids, draft.allocation_mode)
            except EntryValidationError as e:
                preview.errors.append(str(e))
            warning = allocation_warning(draft.allocation_mode, amount, preview.allocations)
            if warning:
                preview.warnings.append(warning)
    
    try:
        validate_new_entry(db, draft)
    except EntryValidationError as e:
        preview.errors.append(str(e))
    return preview


def list_entries(
    db: Session,
    status: Optional[PaymentStatus] = None,
    transaction_type: Optional[TransactionType] = None
) -> List[Entry]:
    query = db.query(Entry)
    if status is not None:
        query = query.filter(Entry.status == status)
    if transaction_type is not None:
        query = query.filter(Entry.transaction_type == transaction_type)
    return query.order_by(Entry.created_at.desc()).all()


def group_entries_by_type(entries: List[Entry]) -> Dict[str, List[Entry]]:
    """Entries keyed by transaction type; every type is present."""
    grouped = {t.value: [] for t in TransactionType}
    for entry in entries:
        grouped[entry.transaction_type.value].append(entry)
    return grouped


def delete_entry(db: Session, entry: Entry):
    """Delete an entry with its payments, terms and allocations."""
    entry_id = entry.id
    db.delete(entry)
    db.commit()
    logger.info("Deleted entry %s", entry_id)


def delete_paid_entries(db: Session) -> int:
    """Delete every fully paid entry."""
    entries = db.query(Entry).filter(Entry.status == PaymentStatus.PAID).all()
    for entry in entries:
        db.delete(entry)
    db.commit()
    logger.info("Deleted %s paid entries", len(entries))
    return len(entries)
