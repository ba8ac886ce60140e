"""Models package - Import all models for SQLAlchemy registration."""
from lendtrack.models.person import Person
from lendtrack.models.group import Group, GroupMember
from lendtrack.models.entry import (
    Entry, TransactionType, PaymentStatus, PaymentFrequency, AllocationMode
)
from lendtrack.models.installment import InstallmentTerm, InstallmentStatus
from lendtrack.models.allocation import PaymentAllocation, AllocationStatus
from lendtrack.models.payment import Payment

__all__ = [
    "Person",
    "Group",
    "GroupMember",
    "Entry",
    "TransactionType",
    "PaymentStatus",
    "PaymentFrequency",
    "AllocationMode",
    "InstallmentTerm",
    "InstallmentStatus",
    "PaymentAllocation",
    "AllocationStatus",
    "Payment",
]
