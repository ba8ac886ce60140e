"""
Pydantic schemas for Entry, InstallmentTerm and PaymentAllocation.
"""
from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal
from lendtrack.models.entry import TransactionType, PaymentStatus, PaymentFrequency, AllocationMode
from lendtrack.models.installment import InstallmentStatus
from lendtrack.models.allocation import AllocationStatus
from lendtrack.schemas.person import PersonResponse


class AllocationInput(BaseModel):
    """One member's share as submitted with a group entry."""
    member_id: int
    amount: Optional[Decimal] = None
    percent: Optional[Decimal] = None
    description: str = ""
    notes: Optional[str] = None


class EntryCreate(BaseModel):
    """Schema for entry creation, also used as the draft for previews.
    
    Every field is optional at this level so business validation can report
    the first missing field with a readable message.
    """
    entry_name: str = ""
    description: Optional[str] = None
    transaction_type: TransactionType = TransactionType.STRAIGHT
    lender_id: Optional[int] = None
    borrower_id: Optional[int] = None
    borrower_group_id: Optional[int] = None
    amount_borrowed: Optional[Decimal] = None
    date_borrowed: Optional[date] = None
    notes: Optional[str] = None
    payment_notes: Optional[str] = None
    # Installment
    start_date: Optional[date] = None
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    payment_terms: Optional[int] = None
    payment_amount_per_term: Optional[Decimal] = None
    # Group
    allocation_mode: Optional[AllocationMode] = None
    allocations: List[AllocationInput] = []


class EntryUpdate(BaseModel):
    """Schema for entry update; only submitted fields are applied."""
    entry_name: Optional[str] = None
    description: Optional[str] = None
    transaction_type: Optional[TransactionType] = None
    lender_id: Optional[int] = None
    borrower_id: Optional[int] = None
    borrower_group_id: Optional[int] = None
    amount_borrowed: Optional[Decimal] = None
    date_borrowed: Optional[date] = None
    notes: Optional[str] = None
    payment_notes: Optional[str] = None
    start_date: Optional[date] = None
    payment_frequency: Optional[PaymentFrequency] = None
    payment_terms: Optional[int] = None
    payment_amount_per_term: Optional[Decimal] = None
    allocation_mode: Optional[AllocationMode] = None
    allocations: Optional[List[AllocationInput]] = None


class InstallmentTermResponse(BaseModel):
    """Schema for installment term with derived status."""
    id: int
    entry_id: str
    term_number: int
    due_date: date
    status: InstallmentStatus
    actions: List[str] = []
    skipped: bool
    notes: Optional[str] = None


class TermNotesUpdate(BaseModel):
    """Schema for editing the notes of a term."""
    notes: str


class AllocationResponse(BaseModel):
    """Schema for payment allocation response."""
    id: int
    entry_id: str
    member_id: int
    member: PersonResponse
    amount: Decimal
    amount_paid: Decimal
    percent: Decimal
    description: str = ""
    notes: Optional[str] = None
    status: AllocationStatus
    max_payment: Decimal  # amount - amount_paid
    
    class Config:
        from_attributes = True


class AllocationDetailsUpdate(BaseModel):
    """Schema for editing the descriptive fields of an allocation."""
    description: Optional[str] = None
    notes: Optional[str] = None


class EntryResponse(BaseModel):
    """Schema for entry response."""
    id: str
    reference_id: str
    entry_name: str
    description: Optional[str] = None
    transaction_type: TransactionType
    lender_id: int
    lender: PersonResponse
    borrower_id: Optional[int] = None
    borrower: Optional[PersonResponse] = None
    borrower_group_id: Optional[int] = None
    borrower_group_name: Optional[str] = None
    amount_borrowed: Decimal
    amount_remaining: Decimal
    status: PaymentStatus
    date_borrowed: Optional[date] = None
    date_fully_paid: Optional[date] = None
    notes: Optional[str] = None
    payment_notes: Optional[str] = None
    image_urls: List[str] = []
    start_date: Optional[date] = None
    payment_frequency: Optional[PaymentFrequency] = None
    payment_terms: Optional[int] = None
    payment_amount_per_term: Optional[Decimal] = None
    allocation_mode: Optional[AllocationMode] = None
    terms: List[InstallmentTermResponse] = []
    allocations: List[AllocationResponse] = []
    has_payments: bool = False
    warnings: List[str] = []
    created_at: datetime
    updated_at: datetime


class AllocationShareResponse(BaseModel):
    """Schema for a computed (unsaved) allocation share."""
    member_id: int
    amount: Decimal
    percent: Decimal
    description: str = ""
    notes: Optional[str] = None
    
    class Config:
        from_attributes = True


class EntryPreviewResponse(BaseModel):
    """Schema for the entry form preview."""
    lender_id: Optional[int] = None
    payment_amount_per_term: Optional[Decimal] = None
    allocations: List[AllocationShareResponse] = []
    warnings: List[str] = []
    errors: List[str] = []
    
    class Config:
        from_attributes = True


EntriesByType = Dict[str, List[EntryResponse]]
