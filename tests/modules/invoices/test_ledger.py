"""Tests for the pure invoice-chain functions (no database)."""

from dataclasses import replace
from decimal import Decimal

import pytest

from school_office.modules.classes.models import FeeKind
from school_office.modules.invoices.ledger import (
    LedgerEntry,
    LineItem,
    build_line_items,
    carry_line,
    chain_violations,
    repair_chain,
)
from school_office.modules.invoices.models import LineType


SCHEDULE = {kind: Decimal("0.00") for kind in FeeKind}
SCHEDULE.update(
    {
        FeeKind.MONTHLY: Decimal("1000.00"),
        FeeKind.EXAM: Decimal("300.00"),
        FeeKind.TUITION: Decimal("500.00"),
    }
)


def _entry(invoice_id: int, fees: str, paid: str = "0", carried: str = "0") -> LedgerEntry:
    """Invoice with one monthly-style line of ``fees`` and an optional carry line."""
    lines = [LineItem.standard(FeeKind.MONTHLY, Decimal(fees))]
    carry = carry_line(Decimal(carried))
    if carry is not None:
        lines.insert(0, carry)
    return LedgerEntry(invoice_id=invoice_id, lines=tuple(lines), total_paid=Decimal(paid))


class TestBuildLineItems:
    """Tests for building the lines of a new invoice."""

    def test_selected_fees_at_catalog_rates(self):
        lines = build_line_items([FeeKind.MONTHLY, FeeKind.EXAM], SCHEDULE)
        assert [(l.fee_kind, l.amount) for l in lines] == [
            (FeeKind.MONTHLY, Decimal("1000.00")),
            (FeeKind.EXAM, Decimal("300.00")),
        ]

    def test_duplicate_fee_kinds_dropped(self):
        lines = build_line_items([FeeKind.MONTHLY, FeeKind.MONTHLY], SCHEDULE)
        assert len(lines) == 1

    def test_tuition_added_for_tuition_student(self):
        lines = build_line_items([FeeKind.MONTHLY], SCHEDULE, in_tuition=True)
        assert [l.fee_kind for l in lines] == [FeeKind.MONTHLY, FeeKind.TUITION]
        assert lines[-1].amount == Decimal("500.00")

    def test_tuition_not_doubled_when_selected(self):
        lines = build_line_items([FeeKind.TUITION], SCHEDULE, in_tuition=True)
        assert [l.fee_kind for l in lines] == [FeeKind.TUITION]

    def test_tuition_skipped_when_class_rate_is_zero(self):
        schedule = {**SCHEDULE, FeeKind.TUITION: Decimal("0")}
        lines = build_line_items([FeeKind.MONTHLY], schedule, in_tuition=True)
        assert [l.fee_kind for l in lines] == [FeeKind.MONTHLY]

    def test_extra_fee_adds_adhoc_line(self):
        lines = build_line_items(
            [FeeKind.MONTHLY], SCHEDULE, extra_fee=Decimal("150"), extra_fee_label="Picnic"
        )
        assert lines[-1].line_type == LineType.ADHOC
        assert lines[-1].description == "Picnic"
        assert lines[-1].amount == Decimal("150.00")

    def test_zero_extra_fee_ignored(self):
        lines = build_line_items([FeeKind.MONTHLY], SCHEDULE, extra_fee=Decimal("0"))
        assert all(l.line_type == LineType.STANDARD for l in lines)

    def test_previous_dues_line_first(self):
        lines = build_line_items([FeeKind.MONTHLY], SCHEDULE, previous_balance=Decimal("400"))
        assert lines[0].line_type == LineType.PREVIOUS_DUES
        assert lines[0].description == "Previous Dues"
        assert lines[0].amount == Decimal("400.00")

    def test_zero_previous_balance_has_no_carry_line(self):
        lines = build_line_items([FeeKind.MONTHLY], SCHEDULE, previous_balance=Decimal("0"))
        assert not any(l.is_carry for l in lines)

    def test_credit_carried_as_negative_line(self):
        lines = build_line_items([FeeKind.MONTHLY], SCHEDULE, previous_balance=Decimal("-200"))
        assert lines[0].line_type == LineType.ADVANCE_CREDIT
        assert lines[0].amount == Decimal("-200.00")

    def test_credit_dropped_when_credit_carry_disabled(self):
        lines = build_line_items(
            [FeeKind.MONTHLY], SCHEDULE, previous_balance=Decimal("-200"), carry_credit=False
        )
        assert not any(l.is_carry for l in lines)

    def test_no_fees_gives_empty_invoice(self):
        assert build_line_items([], SCHEDULE) == ()


class TestLedgerEntry:
    """Balance identity on a single entry."""

    def test_totals(self):
        entry = _entry(1, "1000", paid="600", carried="400")
        assert entry.total_billed == Decimal("1400.00")
        assert entry.balance == Decimal("800.00")
        assert entry.carried_in == Decimal("400.00")
        assert entry.balance == entry.total_billed - entry.total_paid

    def test_with_carried_replaces_carry_line(self):
        entry = _entry(1, "1000", carried="400").with_carried(Decimal("50"))
        assert entry.carried_in == Decimal("50.00")
        assert len(entry.lines) == 2

        cleared = entry.with_carried(Decimal("0"))
        assert cleared.carried_in == Decimal("0.00")
        assert len(cleared.lines) == 1


class TestRepairChain:
    """Tests for forward repair of a chain."""

    def test_paying_first_invoice_clears_later_dues(self):
        # A -> B -> C, all unpaid, dues carried forward
        chain = [
            _entry(1, "1000", paid="1000"),
            _entry(2, "1000", carried="1000"),
            _entry(3, "1000", carried="2000"),
        ]
        repaired = repair_chain(chain, 1)

        assert [e.invoice_id for e in repaired] == [2, 3]
        b, c = repaired
        assert b.carried_in == Decimal("0.00")
        assert b.total_billed == Decimal("1000.00")
        assert b.balance == Decimal("1000.00")
        assert c.carried_in == Decimal("1000.00")
        assert c.total_billed == Decimal("2000.00")
        assert c.balance == Decimal("2000.00")

    def test_chain_invariant_holds_after_repair(self):
        chain = [
            _entry(1, "1000", paid="300"),
            _entry(2, "800", paid="100", carried="5"),
            _entry(3, "1200", carried="99"),
        ]
        fixed = chain[:1] + repair_chain(chain, 1)
        for previous, current in zip(fixed, fixed[1:]):
            assert current.carried_in == previous.balance
        assert chain_violations(fixed) == []

    def test_overpayment_reduces_next_invoice(self):
        chain = [_entry(1, "1000", paid="1200"), _entry(2, "1000")]
        (b,) = repair_chain(chain, 1)
        assert b.carried_in == Decimal("-200.00")
        assert b.lines[0].line_type == LineType.ADVANCE_CREDIT
        assert b.total_billed == Decimal("800.00")
        assert b.balance == Decimal("800.00")

    def test_overpayment_omitted_without_credit_carry(self):
        chain = [_entry(1, "1000", paid="1200"), _entry(2, "1000")]
        (b,) = repair_chain(chain, 1, carry_credit=False)
        assert b.carried_in == Decimal("0.00")
        assert b.total_billed == Decimal("1000.00")

    def test_repair_from_start_uses_opening_balance(self):
        chain = [_entry(1, "1000"), _entry(2, "1000", carried="1000")]
        a, b = repair_chain(chain, 0, opening_balance=Decimal("250"))
        assert a.carried_in == Decimal("250.00")
        assert a.balance == Decimal("1250.00")
        assert b.carried_in == Decimal("1250.00")

    def test_entries_before_start_untouched(self):
        chain = [_entry(1, "1000", carried="77"), _entry(2, "1000")]
        repaired = repair_chain(chain, 1)
        assert len(repaired) == 1
        assert chain[0].carried_in == Decimal("77.00")
        # Reads the stored balance of the untouched predecessor
        assert repaired[0].carried_in == Decimal("1077.00")

    def test_start_past_end_returns_nothing(self):
        chain = [_entry(1, "1000")]
        assert repair_chain(chain, 1) == []
        assert repair_chain(chain, 5) == []

    def test_negative_start_rejected(self):
        with pytest.raises(ValueError):
            repair_chain([], -1)

    def test_repair_is_idempotent(self):
        chain = [_entry(1, "1000", paid="250"), _entry(2, "500"), _entry(3, "700")]
        once = repair_chain(chain, 0)
        twice = repair_chain(once, 0)
        assert once == twice

    def test_fees_and_payments_kept(self):
        chain = [_entry(1, "1000"), _entry(2, "640", paid="90")]
        (b,) = repair_chain(chain, 1)
        assert b.fee_lines == chain[1].fee_lines
        assert b.total_paid == Decimal("90")


class TestChainViolations:
    def test_reports_wrong_carry(self):
        chain = [_entry(1, "1000"), _entry(2, "1000", carried="300")]
        problems = chain_violations(chain)
        assert len(problems) == 1
        assert "expected 1000.00" in problems[0]

    def test_reports_stored_balance_drift(self):
        chain = [
            _entry(1, "1000"),
            replace(_entry(2, "1000", carried="1000"), stored_billed=Decimal("2000"), stored_balance=Decimal("1500")),
        ]
        problems = chain_violations(chain)
        assert problems == ["invoice #1 (2): stored balance 1500.00, expected 2000.00"]

    def test_reports_stored_total_billed_drift(self):
        chain = [replace(_entry(1, "1000"), stored_billed=Decimal("900"), stored_balance=Decimal("1000"))]
        problems = chain_violations(chain)
        assert problems == ["invoice #0 (1): stored total_billed 900.00, lines sum to 1000.00"]

    def test_stored_totals_not_part_of_equality(self):
        entry = _entry(1, "1000")
        assert replace(entry, stored_balance=Decimal("1")) == entry

    def test_opening_balance_checked(self):
        chain = [_entry(1, "1000")]
        assert chain_violations(chain, opening_balance=Decimal("10")) != []
        assert chain_violations(chain) == []
