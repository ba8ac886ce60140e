"""
Shared FastAPI dependencies.
"""
from datetime import date


def get_today() -> date:
    """Calendar day used for every date-derived status.
    
    Overridden in tests to pin "today".
    """
    return date.today()
