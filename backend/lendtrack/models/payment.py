"""
Payment model - a single monetary event against an entry.
"""
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, Text, JSON
from sqlalchemy.orm import relationship
from lendtrack.db.base import BaseModel


class Payment(BaseModel):
    """Payment against an entry, optionally tied to one term or one allocation.
    
    Payments are never edited in place; a correction is a delete followed by a new payment.
    """
    __tablename__ = "payments"
    
    entry_id = Column(String(36), ForeignKey("entries.id"), nullable=False, index=True)
    payee_id = Column(Integer, ForeignKey("persons.id"), nullable=False, index=True)
    payment_amount = Column(Numeric(15, 2), nullable=False)
    payment_date = Column(Date, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    image_urls = Column(JSON, nullable=False, default=list)
    term_id = Column(Integer, ForeignKey("installment_terms.id"), nullable=True, index=True)
    allocation_id = Column(Integer, ForeignKey("payment_allocations.id"), nullable=True, index=True)
    
    # Relationships
    entry = relationship("Entry", back_populates="payments")
    payee = relationship("Person")
    term = relationship("InstallmentTerm", back_populates="payments")
    allocation = relationship("PaymentAllocation", back_populates="payments")
    
    @property
    def term_number(self):
        return self.term.term_number if self.term else None
