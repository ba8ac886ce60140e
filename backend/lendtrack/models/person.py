"""
Person model for lenders, borrowers and payees.
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from lendtrack.db.base import BaseModel


class Person(BaseModel):
    """A person who can lend, borrow, or receive a payment."""
    __tablename__ = "persons"
    
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    contact = Column(String(100), nullable=True)
    
    # Relationships
    memberships = relationship("GroupMember", back_populates="person", cascade="all, delete-orphan")
