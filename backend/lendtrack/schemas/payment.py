"""
Pydantic schemas for Payment entity.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from lendtrack.schemas.person import PersonResponse


class PaymentResponse(BaseModel):
    """Schema for payment response."""
    id: int
    entry_id: str
    payee_id: int
    payee: PersonResponse
    payment_amount: Decimal
    payment_date: date
    notes: Optional[str] = None
    image_urls: List[str] = []
    term_id: Optional[int] = None
    term_number: Optional[int] = None
    allocation_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class DeleteResult(BaseModel):
    """Schema for bulk delete results."""
    message: str
    deleted: int
