"""
Payment ledger service.

Recording or deleting a payment always re-derives the parent entry's
remaining amount, status and completion date, as well as the paid amount and
status of each of its group allocations.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session
from lendtrack.core.config import settings
from lendtrack.core.utils import as_calendar_date, format_money, to_money
from lendtrack.models.entry import Entry, TransactionType
from lendtrack.models.person import Person
from lendtrack.models.payment import Payment
from lendtrack.models.installment import InstallmentTerm
from lendtrack.models.allocation import PaymentAllocation
from lendtrack.services.exceptions import (
    NotFoundError, EntryValidationError, PaymentLimitExceededError
)
from lendtrack.services.installment_service import ensure_term_payable
from lendtrack.services.status_service import (
    total_paid, allocation_paid, derive_entry_balance, resolve_date_fully_paid,
    derive_allocation_status, allocation_payment_cap
)

logger = logging.getLogger(__name__)


def refresh_entry_ledger(entry: Entry, today: date) -> Entry:
    """Re-derive every ledger-dependent field of an entry from its payments."""
    payments = list(entry.payments)
    
    balance = derive_entry_balance(entry.amount_borrowed, total_paid(payments))
    entry.amount_remaining = balance.amount_remaining
    entry.status = balance.status
    entry.date_fully_paid = resolve_date_fully_paid(entry.date_fully_paid, balance.amount_remaining, today)
    
    for allocation in entry.allocations:
        paid = allocation_paid(allocation.id, payments)
        allocation.amount_paid = paid
        allocation.status = derive_allocation_status(allocation.amount, paid)
    
    return entry


def get_payment(db: Session, payment_id: int) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def _resolve_term(db: Session, entry: Entry, term_id: int) -> InstallmentTerm:
    if entry.transaction_type != TransactionType.INSTALLMENT:
        raise EntryValidationError("Only installment entries have payment terms.")
    term = db.query(InstallmentTerm).filter(
        InstallmentTerm.id == term_id,
        InstallmentTerm.entry_id == entry.id
    ).first()
    if not term:
        raise NotFoundError("Installment term not found")
    return term


def _resolve_allocation(db: Session, entry: Entry, allocation_id: int) -> PaymentAllocation:
    if entry.transaction_type != TransactionType.GROUP:
        raise EntryValidationError("Only group entries have payment allocations.")
    allocation = db.query(PaymentAllocation).filter(
        PaymentAllocation.id == allocation_id,
        PaymentAllocation.entry_id == entry.id
    ).first()
    if not allocation:
        raise NotFoundError("Payment allocation not found")
    return allocation


def validate_payment(
    db: Session,
    entry_id: str,
    payee_id: int,
    payment_amount: Decimal,
    today: date,
    term_id: Optional[int] = None,
    allocation_id: Optional[int] = None
) -> Entry:
    """
    Check a payment without recording it; returns the target entry.
    
    Direct and term payments may not exceed the entry's remaining balance.
    Allocation payments may not exceed what is still due on that allocation.
    """
    if payment_amount is None or Decimal(payment_amount) <= 0:
        raise EntryValidationError("Amount must be a positive number.")
    if term_id is not None and allocation_id is not None:
        raise EntryValidationError("A payment can target a term or an allocation, not both.")
    amount = to_money(payment_amount)
    
    entry = db.query(Entry).filter(Entry.id == entry_id).first()
    if not entry:
        raise NotFoundError("Entry not found")
    if not db.query(Person).filter(Person.id == payee_id).first():
        raise NotFoundError("Payee not found.")
    
    if allocation_id is not None:
        allocation = _resolve_allocation(db, entry, allocation_id)
        cap = allocation_payment_cap(allocation.amount, allocation.amount_paid)
        if amount > cap:
            logger.warning("Rejected payment of %s on allocation %s (cap %s)", amount, allocation.id, cap)
            raise PaymentLimitExceededError(
                f"Amount cannot exceed amount due for this allocation ({format_money(cap, settings.CURRENCY_SYMBOL)})"
            )
    else:
        if term_id is not None:
            ensure_term_payable(_resolve_term(db, entry, term_id), today)
        remaining = to_money(entry.amount_remaining)
        if amount > remaining:
            logger.warning("Rejected payment of %s on entry %s (remaining %s)", amount, entry.id, remaining)
            raise PaymentLimitExceededError(
                f"Amount cannot exceed remaining balance ({format_money(remaining, settings.CURRENCY_SYMBOL)})"
            )
    return entry


def create_payment(
    db: Session,
    entry_id: str,
    payee_id: int,
    payment_amount: Decimal,
    today: date,
    payment_date: Optional[date] = None,
    notes: Optional[str] = None,
    term_id: Optional[int] = None,
    allocation_id: Optional[int] = None,
    image_urls: Optional[List[str]] = None
) -> Payment:
    """Record a payment against an entry, one of its terms, or one of its allocations."""
    entry = validate_payment(db, entry_id, payee_id, payment_amount, today, term_id, allocation_id)
    amount = to_money(payment_amount)
    
    payment = Payment(
        payee_id=payee_id,
        payment_amount=amount,
        payment_date=as_calendar_date(payment_date) or today,
        notes=notes,
        term_id=term_id,
        allocation_id=allocation_id,
        image_urls=image_urls or []
    )
    entry.payments.append(payment)
    refresh_entry_ledger(entry, today)
    
    db.commit()
    db.refresh(payment)
    logger.info(
        "Recorded payment %s of %s on entry %s (remaining %s, %s)",
        payment.id, amount, entry.id, entry.amount_remaining, entry.status.value
    )
    return payment


def delete_payment(db: Session, payment: Payment, today: date):
    """Delete one payment and re-derive its entry."""
    payment_id = payment.id
    entry = payment.entry
    if entry is not None:
        entry.payments.remove(payment)
        refresh_entry_ledger(entry, today)
    else:
        db.delete(payment)
    db.commit()
    logger.info("Deleted payment %s", payment_id)


def _delete_many(db: Session, payments: List[Payment], today: date) -> int:
    touched = {}
    for payment in payments:
        entry = payment.entry
        if entry is not None:
            entry.payments.remove(payment)
            touched[entry.id] = entry
        else:
            db.delete(payment)
    for entry in touched.values():
        refresh_entry_ledger(entry, today)
    db.commit()
    return len(payments)


def delete_payments_for_entry(db: Session, entry: Entry, today: date) -> int:
    """Delete every payment of an entry."""
    count = _delete_many(db, list(entry.payments), today)
    logger.info("Deleted %s payment(s) of entry %s", count, entry.id)
    return count


def delete_payments_for_payee(db: Session, payee_id: int, today: date) -> int:
    """Delete every payment made by one person, across all entries."""
    payments = db.query(Payment).filter(Payment.payee_id == payee_id).all()
    count = _delete_many(db, payments, today)
    logger.info("Deleted %s payment(s) of payee %s", count, payee_id)
    return count


def delete_all_payments(db: Session, today: date) -> int:
    """Delete the whole payment ledger."""
    count = _delete_many(db, db.query(Payment).all(), today)
    logger.info("Deleted all %s payment(s)", count)
    return count
