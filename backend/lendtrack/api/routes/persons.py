"""
Person management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List
from lendtrack.db.session import get_db
from lendtrack.models.person import Person
from lendtrack.models.entry import Entry
from lendtrack.models.payment import Payment
from lendtrack.models.allocation import PaymentAllocation
from lendtrack.schemas.person import PersonCreate, PersonUpdate, PersonResponse
from lendtrack.services.exceptions import ConflictError

router = APIRouter(prefix="/persons", tags=["persons"])


def get_person_or_404(person_id: int, db: Session) -> Person:
    """Fetch a person or raise 404."""
    person = db.query(Person).filter(Person.id == person_id).first()
    if not person:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Person not found"
        )
    return person


@router.get("", response_model=List[PersonResponse])
async def list_persons(db: Session = Depends(get_db)):
    """List all people."""
    return db.query(Person).order_by(Person.first_name, Person.last_name).all()


@router.post("", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def create_person(person_data: PersonCreate, db: Session = Depends(get_db)):
    """Create a person."""
    if not person_data.first_name.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="First name is required."
        )
    person = Person(
        first_name=person_data.first_name.strip(),
        last_name=person_data.last_name.strip(),
        contact=person_data.contact
    )
    db.add(person)
    db.commit()
    db.refresh(person)
    return person


@router.get("/{person_id}", response_model=PersonResponse)
async def get_person(person_id: int, db: Session = Depends(get_db)):
    """Get person by ID."""
    return get_person_or_404(person_id, db)


@router.put("/{person_id}", response_model=PersonResponse)
async def update_person(person_id: int, person_data: PersonUpdate, db: Session = Depends(get_db)):
    """Update a person's name or contact."""
    person = get_person_or_404(person_id, db)
    for field, value in person_data.model_dump(exclude_unset=True).items():
        setattr(person, field, value)
    db.commit()
    db.refresh(person)
    return person


@router.delete("/{person_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_person(person_id: int, db: Session = Depends(get_db)):
    """Delete a person who is not part of any entry or payment."""
    person = get_person_or_404(person_id, db)
    
    in_entries = db.query(Entry).filter(
        or_(Entry.lender_id == person_id, Entry.borrower_id == person_id)
    ).first()
    in_payments = db.query(Payment).filter(Payment.payee_id == person_id).first()
    in_allocations = db.query(PaymentAllocation).filter(PaymentAllocation.member_id == person_id).first()
    if in_entries or in_payments or in_allocations:
        raise ConflictError("Person is still referenced by entries or payments.")
    
    db.delete(person)
    db.commit()
