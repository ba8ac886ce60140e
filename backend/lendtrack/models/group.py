"""
Group model - a named set of people that can borrow together.
"""
from sqlalchemy import Column, String, ForeignKey, Integer
from sqlalchemy.orm import relationship
from lendtrack.db.base import BaseModel


class Group(BaseModel):
    """Group model; a group is itself a valid borrower."""
    __tablename__ = "groups"
    
    group_name = Column(String(200), nullable=False)
    
    # Relationships
    memberships = relationship(
        "GroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupMember.id"
    )
    
    @property
    def members(self):
        """Members in the order they were added."""
        return [m.person for m in self.memberships]
    
    @property
    def member_ids(self):
        return [m.person_id for m in self.memberships]


class GroupMember(BaseModel):
    """Junction table for Group and Person many-to-many relationship."""
    __tablename__ = "group_members"
    
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    person_id = Column(Integer, ForeignKey("persons.id"), nullable=False, index=True)
    
    # Relationships
    group = relationship("Group", back_populates="memberships")
    person = relationship("Person", back_populates="memberships")
