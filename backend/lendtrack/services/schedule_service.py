"""
Installment schedule arithmetic.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Tuple
from dateutil.relativedelta import relativedelta
from lendtrack.core.utils import as_calendar_date, to_money
from lendtrack.models.entry import PaymentFrequency


def frequency_step(frequency: PaymentFrequency, count: int = 1):
    """Offset covering `count` payment periods."""
    if frequency == PaymentFrequency.WEEKLY:
        return timedelta(days=7 * count)
    if frequency == PaymentFrequency.MONTHLY:
        return relativedelta(months=count)
    raise ValueError(f"Unsupported payment frequency: {frequency}")


def due_date_for(start_date: date, frequency: PaymentFrequency, term_number: int) -> date:
    """Due date of term N: start date advanced by N periods.
    
    Computed from the start date rather than the previous term so month-end
    dates do not drift (Jan 31 -> Feb 29 -> Mar 31).
    """
    return as_calendar_date(start_date) + frequency_step(frequency, term_number)


def build_schedule(
    start_date: date,
    frequency: PaymentFrequency,
    payment_terms: int
) -> List[Tuple[int, date]]:
    """(term_number, due_date) pairs for terms 1..payment_terms."""
    return [
        (term_number, due_date_for(start_date, frequency, term_number))
        for term_number in range(1, payment_terms + 1)
    ]


def next_due_date(last_due_date: date, frequency: PaymentFrequency) -> date:
    """Due date of a term appended after the current last term."""
    return as_calendar_date(last_due_date) + frequency_step(frequency)


def default_amount_per_term(amount_borrowed: Decimal, payment_terms: int) -> Decimal:
    """Amount borrowed spread evenly over the terms, rounded to the cent."""
    return to_money(Decimal(amount_borrowed) / Decimal(payment_terms))
