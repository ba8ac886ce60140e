"""
Entry model - the header record of a loan or shared expense.
"""
import enum
import uuid
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, Text, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from lendtrack.db.base import BaseModel


class TransactionType(str, enum.Enum):
    """Entry classification, fixed at creation."""
    STRAIGHT = "STRAIGHT"
    INSTALLMENT = "INSTALLMENT"
    GROUP = "GROUP"


class PaymentStatus(str, enum.Enum):
    """Entry-level payment status."""
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


class PaymentFrequency(str, enum.Enum):
    """Installment payment frequency."""
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"


class AllocationMode(str, enum.Enum):
    """How a group expense is split across members."""
    EQUAL = "equal"
    PERCENT = "percent"
    AMOUNT = "amount"


def generate_entry_id() -> str:
    return str(uuid.uuid4())


class Entry(BaseModel):
    """Loan/expense between a lender and a borrower (person or group)."""
    __tablename__ = "entries"
    
    id = Column(String(36), primary_key=True, default=generate_entry_id)
    reference_id = Column(String(20), nullable=False, index=True)
    entry_name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    transaction_type = Column(SQLEnum(TransactionType), nullable=False, index=True)
    
    # Parties: borrower_id XOR borrower_group_id
    lender_id = Column(Integer, ForeignKey("persons.id"), nullable=False, index=True)
    borrower_id = Column(Integer, ForeignKey("persons.id"), nullable=True, index=True)
    borrower_group_id = Column(Integer, ForeignKey("groups.id"), nullable=True, index=True)
    
    # Money
    amount_borrowed = Column(Numeric(15, 2), nullable=False)
    amount_remaining = Column(Numeric(15, 2), nullable=False)  # Derived from the payment ledger
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False, index=True)
    
    # Dates
    date_borrowed = Column(Date, nullable=True)
    date_fully_paid = Column(Date, nullable=True)  # Derived: set when remaining reaches zero
    
    notes = Column(Text, nullable=True)
    payment_notes = Column(Text, nullable=True)
    image_urls = Column(JSON, nullable=False, default=list)
    
    # Installment schedule (INSTALLMENT only)
    start_date = Column(Date, nullable=True)
    payment_frequency = Column(SQLEnum(PaymentFrequency), nullable=True)
    payment_terms = Column(Integer, nullable=True)
    payment_amount_per_term = Column(Numeric(15, 2), nullable=True)
    
    # Group split (GROUP only)
    allocation_mode = Column(SQLEnum(AllocationMode, values_callable=lambda e: [m.value for m in e]), nullable=True)
    
    # Relationships
    lender = relationship("Person", foreign_keys=[lender_id])
    borrower = relationship("Person", foreign_keys=[borrower_id])
    borrower_group = relationship("Group")
    payments = relationship(
        "Payment",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="Payment.id"
    )
    terms = relationship(
        "InstallmentTerm",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="InstallmentTerm.term_number"
    )
    allocations = relationship(
        "PaymentAllocation",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="PaymentAllocation.id"
    )
    
    @property
    def has_payments(self) -> bool:
        """True once any payment exists, directly or through a term/allocation."""
        return len(self.payments) > 0

    @property
    def has_skipped_terms(self) -> bool:
        return any(term.skipped for term in self.terms)
