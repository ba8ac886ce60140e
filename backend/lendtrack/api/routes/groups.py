"""
Group management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from lendtrack.db.session import get_db
from lendtrack.models.group import Group, GroupMember
from lendtrack.models.person import Person
from lendtrack.models.entry import Entry
from lendtrack.schemas.group import GroupCreate, GroupUpdate, GroupResponse
from lendtrack.services.exceptions import ConflictError

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_or_404(group_id: int, db: Session) -> Group:
    """Fetch a group or raise 404."""
    group = db.query(Group).filter(Group.id == group_id).first()
    if not group:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found"
        )
    return group


def build_memberships(member_ids: List[int], db: Session) -> List[GroupMember]:
    """Membership rows for the given people, in order, without duplicates."""
    unique_ids = list(dict.fromkeys(member_ids))
    found = {p.id for p in db.query(Person).filter(Person.id.in_(unique_ids)).all()} if unique_ids else set()
    missing = [str(i) for i in unique_ids if i not in found]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown person id(s): {', '.join(missing)}"
        )
    return [GroupMember(person_id=person_id) for person_id in unique_ids]


@router.get("", response_model=List[GroupResponse])
async def list_groups(db: Session = Depends(get_db)):
    """List all groups with their members."""
    return db.query(Group).order_by(Group.group_name).all()


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(group_data: GroupCreate, db: Session = Depends(get_db)):
    """Create a group."""
    if not group_data.group_name.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Group name is required."
        )
    group = Group(group_name=group_data.group_name.strip())
    group.memberships = build_memberships(group_data.member_ids, db)
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(group_id: int, db: Session = Depends(get_db)):
    """Get group by ID."""
    return get_group_or_404(group_id, db)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(group_id: int, group_data: GroupUpdate, db: Session = Depends(get_db)):
    """Rename a group or replace its member list.
    
    Existing entries keep the allocations made at creation time.
    """
    group = get_group_or_404(group_id, db)
    if group_data.group_name is not None:
        group.group_name = group_data.group_name.strip()
    if group_data.member_ids is not None:
        group.memberships = build_memberships(group_data.member_ids, db)
    db.commit()
    db.refresh(group)
    return group


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: int, db: Session = Depends(get_db)):
    """Delete a group that no entry borrows through."""
    group = get_group_or_404(group_id, db)
    if db.query(Entry).filter(Entry.borrower_group_id == group_id).first():
        raise ConflictError("Group is still the borrower of one or more entries.")
    db.delete(group)
    db.commit()
