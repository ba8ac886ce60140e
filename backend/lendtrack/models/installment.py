"""
Installment term model - one scheduled repayment slice.
"""
import enum
from sqlalchemy import Column, String, Date, Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from lendtrack.db.base import BaseModel


class InstallmentStatus(str, enum.Enum):
    """Installment term status (derived, never stored)."""
    NOT_STARTED = "NOT_STARTED"
    UNPAID = "UNPAID"
    DELINQUENT = "DELINQUENT"
    PAID = "PAID"
    SKIPPED = "SKIPPED"


class InstallmentTerm(BaseModel):
    """A single term of an INSTALLMENT entry."""
    __tablename__ = "installment_terms"
    
    entry_id = Column(String(36), ForeignKey("entries.id"), nullable=False, index=True)
    term_number = Column(Integer, nullable=False)  # 1-based, contiguous
    due_date = Column(Date, nullable=False)
    skipped = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    
    # Relationships
    entry = relationship("Entry", back_populates="terms")
    payments = relationship("Payment", back_populates="term")
