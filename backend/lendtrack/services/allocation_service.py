"""
Allocation splitter for group expenses.

Turns a total amount and a split mode (equal / percent / amount) into one
share per group member. Editing a member recomputes only that member's
derived field; nothing is redistributed across the other members.
"""
import logging
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_CEILING
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session
from lendtrack.core.utils import CENT, to_money
from lendtrack.models.entry import AllocationMode
from lendtrack.models.allocation import PaymentAllocation
from lendtrack.services.exceptions import EntryValidationError

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class AllocationShare:
    """One member's computed share."""
    member_id: int
    amount: Decimal
    percent: Decimal
    description: str = ""
    notes: Optional[str] = None


def _percent_of(amount: Decimal, total: Decimal) -> Decimal:
    if not total:
        return ZERO
    return to_money(Decimal(amount) / Decimal(total) * HUNDRED)


def _amount_of(percent: Decimal, total: Decimal) -> Decimal:
    return to_money(Decimal(total) * Decimal(percent) / HUNDRED)


def split_equal(total: Decimal, member_ids: Sequence[int]) -> List[AllocationShare]:
    """
    Equal split, rounded up to the cent so the shares never sum below the total.
    
    The sum may exceed the total by up to (members - 1) cents,
    e.g. 100 over 3 members gives 33.34 each (100.02 in total).
    """
    if not member_ids:
        return []
    total = Decimal(total)
    per_person = (total / Decimal(len(member_ids))).quantize(CENT, rounding=ROUND_CEILING)
    percent = _percent_of(per_person, total)
    return [AllocationShare(member_id=m, amount=per_person, percent=percent) for m in member_ids]


def split_by_percent(
    total: Decimal,
    member_ids: Sequence[int],
    percents: Sequence[Decimal]
) -> List[AllocationShare]:
    """Percent split; each amount is derived from its member's percent."""
    return [
        AllocationShare(member_id=m, amount=_amount_of(p, total), percent=to_money(p))
        for m, p in zip(member_ids, percents)
    ]


def split_by_amount(
    total: Decimal,
    member_ids: Sequence[int],
    amounts: Sequence[Decimal]
) -> List[AllocationShare]:
    """Amount split; each percent is derived from its member's amount."""
    return [
        AllocationShare(member_id=m, amount=to_money(a), percent=_percent_of(a, total))
        for m, a in zip(member_ids, amounts)
    ]


def set_share_percent(share: AllocationShare, total: Decimal, percent: Decimal) -> AllocationShare:
    """Edit one member's percent and recompute that member's amount."""
    return replace(share, percent=to_money(percent), amount=_amount_of(percent, total))


def set_share_amount(share: AllocationShare, total: Decimal, amount: Decimal) -> AllocationShare:
    """Edit one member's amount and recompute that member's percent."""
    return replace(share, amount=to_money(amount), percent=_percent_of(amount, total))


def reallocate(
    total: Decimal,
    member_ids: Sequence[int],
    mode: AllocationMode,
    previous: Optional[Sequence[AllocationShare]] = None,
    previous_mode: Optional[AllocationMode] = None
) -> List[AllocationShare]:
    """
    Recompute all shares for a mode.
    
    Switching to another mode starts from scratch. Re-entering the same
    mode keeps the previous percent/amount, description and notes by member index.
    """
    mode = AllocationMode(mode)
    if mode == AllocationMode.EQUAL:
        return split_equal(total, member_ids)
    
    keep = list(previous or []) if previous_mode is not None and AllocationMode(previous_mode) == mode else []
    shares = []
    for index, member_id in enumerate(member_ids):
        prior = keep[index] if index < len(keep) else None
        if mode == AllocationMode.PERCENT:
            percent = prior.percent if prior else ZERO
            share = AllocationShare(member_id=member_id, amount=_amount_of(percent, total), percent=to_money(percent))
        else:
            amount = prior.amount if prior else ZERO
            share = AllocationShare(member_id=member_id, amount=to_money(amount), percent=_percent_of(amount, total))
        if prior:
            share = replace(share, description=prior.description, notes=prior.notes)
        shares.append(share)
    return shares


def allocation_warning(
    mode: AllocationMode,
    total: Decimal,
    shares: Sequence[AllocationShare]
) -> Optional[str]:
    """Soft warning when the shares do not add up; never blocks submission."""
    if not shares:
        return None
    mode = AllocationMode(mode)
    if mode == AllocationMode.PERCENT:
        total_percent = sum((Decimal(s.percent) for s in shares), ZERO)
        if total_percent < HUNDRED:
            return "Total percent is less than 100%."
        if total_percent > HUNDRED:
            return "Warning: Total percent exceeds 100%."
    elif mode == AllocationMode.AMOUNT:
        total_amount = sum((Decimal(s.amount) for s in shares), ZERO)
        if total_amount < Decimal(total):
            return "Total amount is less than borrowed amount."
        if total_amount > Decimal(total):
            return "Warning: Total amount exceeds borrowed amount."
    return None


def check_partition(member_ids: Sequence[int], allocated_ids: Sequence[int]):
    """Allocations must cover every group member exactly once."""
    seen = set()
    for member_id in allocated_ids:
        if member_id in seen:
            raise EntryValidationError(f"Group member {member_id} is allocated more than once.")
        seen.add(member_id)
    
    outsiders = seen - set(member_ids)
    if outsiders:
        raise EntryValidationError(
            f"Allocation for person(s) not in the group: {', '.join(str(i) for i in sorted(outsiders))}."
        )
    missing = [m for m in member_ids if m not in seen]
    if missing:
        raise EntryValidationError(
            f"Every group member needs an allocation; missing: {', '.join(str(i) for i in missing)}."
        )


def shares_from_inputs(
    total: Decimal,
    member_ids: Sequence[int],
    mode: AllocationMode,
    inputs: Optional[Sequence] = None
) -> List[AllocationShare]:
    """
    Build member shares from submitted allocation inputs.
    
    Inputs carry `member_id`, `percent`, `amount`, `description` and `notes`.
    Equal mode ignores submitted figures; percent and amount modes derive the
    counterpart field for each member. Shares come back in group member order.
    """
    mode = AllocationMode(mode)
    inputs = list(inputs or [])
    
    if mode == AllocationMode.EQUAL and not inputs:
        return split_equal(total, member_ids)
    
    check_partition(member_ids, [i.member_id for i in inputs])
    by_member = {i.member_id: i for i in inputs}
    
    if mode == AllocationMode.EQUAL:
        shares = split_equal(total, member_ids)
    elif mode == AllocationMode.PERCENT:
        percents = [by_member[m].percent or ZERO for m in member_ids]
        if any(Decimal(p) < 0 for p in percents):
            raise EntryValidationError("Allocation percent cannot be negative.")
        shares = split_by_percent(total, member_ids, percents)
    else:
        amounts = [by_member[m].amount or ZERO for m in member_ids]
        if any(Decimal(a) < 0 for a in amounts):
            raise EntryValidationError("Allocation amount cannot be negative.")
        shares = split_by_amount(total, member_ids, amounts)
    
    return [
        replace(s, description=by_member[s.member_id].description or "", notes=by_member[s.member_id].notes)
        for s in shares
    ]


def update_allocation_details(
    db: Session,
    allocation: PaymentAllocation,
    description: Optional[str],
    notes: Optional[str]
) -> PaymentAllocation:
    """Update the descriptive fields of an allocation; money fields stay untouched."""
    if description is not None:
        allocation.description = description
    if notes is not None:
        allocation.notes = notes
    db.commit()
    db.refresh(allocation)
    logger.info("Updated allocation %s details for entry %s", allocation.id, allocation.entry_id)
    return allocation
