"""
Utility functions for the application.
"""
from typing import Any, Union
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def as_calendar_date(value: Union[date, datetime, str, None]) -> Union[date, None]:
    """
    Normalize a date-like value to a calendar day.
    Time-of-day and timezone are dropped so comparisons never drift by a day.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        # Accept "YYYY-MM-DD" as well as full ISO timestamps
        return date.fromisoformat(value[:10])
    raise TypeError(f"Type {type(value)} is not a date")


def to_money(value: Any) -> Decimal:
    """Round a numeric value half-up to the cent."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_date_yymmdd(value: date) -> str:
    """Format a date as YYMMDD (e.g. 2024-01-15 -> "240115")."""
    return value.strftime("%y%m%d")


def format_money(value: Decimal, symbol: str = "") -> str:
    """Format an amount for messages, e.g. ₱1,250.50."""
    return f"{symbol}{to_money(value):,}"
