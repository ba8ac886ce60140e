"""
Payment allocation model - one member's share of a group expense.
"""
import enum
from sqlalchemy import Column, String, Numeric, ForeignKey, Integer, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from lendtrack.db.base import BaseModel


class AllocationStatus(str, enum.Enum):
    """Allocation payment status."""
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


class PaymentAllocation(BaseModel):
    """A group member's share of a GROUP entry."""
    __tablename__ = "payment_allocations"
    
    entry_id = Column(String(36), ForeignKey("entries.id"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("persons.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    amount_paid = Column(Numeric(15, 2), nullable=False, default=0)  # Derived from its own payments
    percent = Column(Numeric(7, 2), nullable=False, default=0)
    description = Column(String(255), nullable=False, default="")
    notes = Column(Text, nullable=True)
    status = Column(SQLEnum(AllocationStatus), default=AllocationStatus.UNPAID, nullable=False)
    
    # Relationships
    entry = relationship("Entry", back_populates="allocations")
    member = relationship("Person")
    payments = relationship("Payment", back_populates="allocation")
