"""
Pydantic schemas for Group entity.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from lendtrack.schemas.person import PersonResponse


class GroupCreate(BaseModel):
    """Schema for group creation."""
    group_name: str
    member_ids: List[int] = []


class GroupUpdate(BaseModel):
    """Schema for group update; member_ids replaces the member list."""
    group_name: Optional[str] = None
    member_ids: Optional[List[int]] = None


class GroupResponse(BaseModel):
    """Schema for group response with members."""
    id: int
    group_name: str
    members: List[PersonResponse] = []
    created_at: datetime
    
    class Config:
        from_attributes = True
