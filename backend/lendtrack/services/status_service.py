"""
Status derivation for entries, installment terms and group allocations.

Every function here is pure: the same ledger snapshot and the same "today"
always give the same result, so status can be re-derived at any time.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional
from lendtrack.core.utils import as_calendar_date, to_money
from lendtrack.models.entry import PaymentStatus
from lendtrack.models.installment import InstallmentStatus
from lendtrack.models.allocation import AllocationStatus

ZERO = Decimal("0.00")

TERM_ACTION_PAY = "pay"
TERM_ACTION_SKIP = "skip"


@dataclass(frozen=True)
class EntryBalance:
    """Derived balance of an entry."""
    amount_remaining: Decimal
    status: PaymentStatus


def total_paid(payments: Iterable) -> Decimal:
    """Sum of payment amounts; payments without an amount contribute nothing."""
    total = ZERO
    for payment in payments:
        if payment is None or payment.payment_amount is None:
            continue
        total += Decimal(payment.payment_amount)
    return to_money(total)


def allocation_paid(allocation_id: int, payments: Iterable) -> Decimal:
    """Sum of the payments recorded against one allocation."""
    return total_paid(p for p in payments if p is not None and p.allocation_id == allocation_id)


def derive_entry_balance(amount_borrowed: Decimal, paid: Decimal) -> EntryBalance:
    """
    Derive remaining amount and status of an entry.
    
    remaining = max(0, borrowed - paid); PAID at zero, PARTIALLY_PAID while
    something was paid, UNPAID otherwise.
    """
    amount_borrowed = to_money(amount_borrowed)
    remaining = max(ZERO, to_money(amount_borrowed - to_money(paid)))
    
    if remaining == ZERO:
        status = PaymentStatus.PAID
    elif remaining < amount_borrowed:
        status = PaymentStatus.PARTIALLY_PAID
    else:
        status = PaymentStatus.UNPAID
    return EntryBalance(amount_remaining=remaining, status=status)


def resolve_date_fully_paid(
    current: Optional[date],
    amount_remaining: Decimal,
    today: date
) -> Optional[date]:
    """Completion date: stamped when the balance reaches zero, cleared when money is owed again."""
    if amount_remaining > ZERO:
        return None
    return current or as_calendar_date(today)


def derive_term_status(
    start_date,
    due_date,
    has_payment: bool,
    skipped: bool,
    today
) -> InstallmentStatus:
    """
    Derive the status of one installment term.
    
    Rules are checked in order and the first match wins; payment and skip
    always override the date-based rules.
    """
    start_date = as_calendar_date(start_date)
    due_date = as_calendar_date(due_date)
    today = as_calendar_date(today)
    
    if start_date is not None and today < start_date:
        return InstallmentStatus.NOT_STARTED
    if has_payment:
        return InstallmentStatus.PAID
    if skipped:
        return InstallmentStatus.SKIPPED
    if today < due_date:
        return InstallmentStatus.NOT_STARTED
    if today == due_date:
        # Due today is still within grace
        return InstallmentStatus.UNPAID
    if today > due_date:
        return InstallmentStatus.DELINQUENT
    return InstallmentStatus.UNPAID


def term_actions(status: InstallmentStatus) -> List[str]:
    """Actions a user may take on a term in the given status."""
    if status in (InstallmentStatus.UNPAID, InstallmentStatus.DELINQUENT):
        return [TERM_ACTION_PAY, TERM_ACTION_SKIP]
    return []


def derive_allocation_status(amount: Decimal, amount_paid: Decimal) -> AllocationStatus:
    """Derive an allocation's status from its own payments."""
    amount_paid = to_money(amount_paid)
    if amount_paid >= to_money(amount):
        return AllocationStatus.PAID
    if amount_paid > ZERO:
        return AllocationStatus.PARTIALLY_PAID
    return AllocationStatus.UNPAID


def allocation_payment_cap(amount: Decimal, amount_paid: Decimal) -> Decimal:
    """Largest single payment an allocation still accepts."""
    return max(ZERO, to_money(Decimal(amount) - Decimal(amount_paid)))
