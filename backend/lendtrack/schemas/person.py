"""
Pydantic schemas for Person entity.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PersonBase(BaseModel):
    """Base person schema."""
    first_name: str
    last_name: str = ""
    contact: Optional[str] = None


class PersonCreate(PersonBase):
    """Schema for person creation."""
    pass


class PersonUpdate(BaseModel):
    """Schema for person update."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    contact: Optional[str] = None


class PersonResponse(PersonBase):
    """Schema for person response."""
    id: int
    created_at: datetime
    
    class Config:
        from_attributes = True
