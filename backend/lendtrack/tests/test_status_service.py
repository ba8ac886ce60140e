"""Tests for entry, term and allocation status derivation."""

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

from lendtrack.models.entry import PaymentStatus
from lendtrack.models.installment import InstallmentStatus
from lendtrack.models.allocation import AllocationStatus
from lendtrack.services.status_service import (
    derive_entry_balance,
    resolve_date_fully_paid,
    derive_term_status,
    term_actions,
    derive_allocation_status,
    allocation_payment_cap,
    total_paid,
    allocation_paid,
)


def payment(amount, allocation_id=None):
    return SimpleNamespace(payment_amount=Decimal(amount), allocation_id=allocation_id)


# ── Entry balance ─────────────────────────────────

class TestEntryBalance:
    def test_unpaid(self):
        balance = derive_entry_balance(Decimal("100"), Decimal("0"))
        assert balance.amount_remaining == Decimal("100.00")
        assert balance.status == PaymentStatus.UNPAID

    def test_partially_paid(self):
        balance = derive_entry_balance(Decimal("100"), Decimal("40"))
        assert balance.amount_remaining == Decimal("60.00")
        assert balance.status == PaymentStatus.PARTIALLY_PAID

    def test_paid(self):
        balance = derive_entry_balance(Decimal("100"), Decimal("100"))
        assert balance.amount_remaining == Decimal("0.00")
        assert balance.status == PaymentStatus.PAID

    def test_overpayment_clamps_to_zero(self):
        balance = derive_entry_balance(Decimal("100"), Decimal("100.02"))
        assert balance.amount_remaining == Decimal("0.00")
        assert balance.status == PaymentStatus.PAID

    def test_order_of_payments_does_not_matter(self):
        amounts = ["10", "25.50", "4.50"]
        forward = derive_entry_balance(Decimal("50"), total_paid(payment(a) for a in amounts))
        backward = derive_entry_balance(Decimal("50"), total_paid(payment(a) for a in reversed(amounts)))
        assert forward == backward
        assert forward.amount_remaining == Decimal("10.00")

    def test_idempotent(self):
        ledger = [payment("30"), payment("20")]
        assert derive_entry_balance(Decimal("80"), total_paid(ledger)) == \
            derive_entry_balance(Decimal("80"), total_paid(ledger))

    def test_missing_payments_contribute_nothing(self):
        ledger = [payment("30"), None, SimpleNamespace(payment_amount=None, allocation_id=None)]
        assert total_paid(ledger) == Decimal("30.00")


class TestDateFullyPaid:
    def test_set_when_remaining_reaches_zero(self):
        assert resolve_date_fully_paid(None, Decimal("0"), date(2024, 3, 5)) == date(2024, 3, 5)

    def test_kept_while_still_zero(self):
        assert resolve_date_fully_paid(date(2024, 3, 5), Decimal("0"), date(2024, 4, 1)) == date(2024, 3, 5)

    def test_cleared_when_money_is_owed_again(self):
        assert resolve_date_fully_paid(date(2024, 3, 5), Decimal("10"), date(2024, 4, 1)) is None

    def test_datetime_today_is_normalized(self):
        assert resolve_date_fully_paid(None, Decimal("0"), datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)


# ── Installment terms ─────────────────────────────

START = date(2024, 1, 1)
DUE = date(2024, 2, 1)


class TestTermStatus:
    def test_due_today_is_unpaid(self):
        assert derive_term_status(START, DUE, False, False, date(2024, 2, 1)) == InstallmentStatus.UNPAID

    def test_day_after_due_is_delinquent(self):
        assert derive_term_status(START, DUE, False, False, date(2024, 2, 2)) == InstallmentStatus.DELINQUENT

    def test_before_start_is_not_started(self):
        assert derive_term_status(START, DUE, False, False, date(2023, 12, 31)) == InstallmentStatus.NOT_STARTED

    def test_before_due_is_not_started(self):
        assert derive_term_status(START, DUE, False, False, date(2024, 1, 15)) == InstallmentStatus.NOT_STARTED

    def test_payment_overrides_dates(self):
        assert derive_term_status(START, DUE, True, False, date(2024, 6, 1)) == InstallmentStatus.PAID
        assert derive_term_status(START, DUE, True, False, date(2024, 1, 15)) == InstallmentStatus.PAID

    def test_skip_overrides_dates(self):
        assert derive_term_status(START, DUE, False, True, date(2024, 6, 1)) == InstallmentStatus.SKIPPED

    def test_start_date_rule_comes_first(self):
        assert derive_term_status(START, DUE, True, True, date(2023, 12, 1)) == InstallmentStatus.NOT_STARTED

    def test_time_of_day_is_ignored(self):
        late_evening = datetime(2024, 2, 1, 23, 59, 59)
        assert derive_term_status(START, DUE, False, False, late_evening) == InstallmentStatus.UNPAID
        assert derive_term_status(START, datetime(2024, 2, 1, 8, 0), False, False, "2024-02-01") == \
            InstallmentStatus.UNPAID


class TestTermActions:
    def test_open_terms_can_be_paid_or_skipped(self):
        assert term_actions(InstallmentStatus.UNPAID) == ["pay", "skip"]
        assert term_actions(InstallmentStatus.DELINQUENT) == ["pay", "skip"]

    def test_closed_terms_offer_nothing(self):
        for status in (InstallmentStatus.NOT_STARTED, InstallmentStatus.PAID, InstallmentStatus.SKIPPED):
            assert term_actions(status) == []


# ── Group allocations ─────────────────────────────

class TestAllocationStatus:
    def test_thresholds(self):
        assert derive_allocation_status(Decimal("100"), Decimal("0")) == AllocationStatus.UNPAID
        assert derive_allocation_status(Decimal("100"), Decimal("80")) == AllocationStatus.PARTIALLY_PAID
        assert derive_allocation_status(Decimal("100"), Decimal("100")) == AllocationStatus.PAID

    def test_cap(self):
        assert allocation_payment_cap(Decimal("100"), Decimal("80")) == Decimal("20.00")
        assert allocation_payment_cap(Decimal("100"), Decimal("100")) == Decimal("0.00")

    def test_allocation_paid_only_counts_its_own_payments(self):
        ledger = [payment("10", allocation_id=1), payment("15", allocation_id=2), payment("5", allocation_id=1)]
        assert allocation_paid(1, ledger) == Decimal("15.00")
        assert allocation_paid(3, ledger) == Decimal("0.00")
