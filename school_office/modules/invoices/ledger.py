"""Pure invoice-chain arithmetic.

Nothing here touches the database. The service layer snapshots a student's
invoices into ``LedgerEntry`` values (oldest first), asks these functions for
the recomputed entries and writes the differences back in one transaction.

Chain rule: every invoice carries the balance of the invoice before it as its
first line ("Previous Dues" when positive, "Advance Credit" when negative and
credit carry is enabled); the first invoice carries the student's opening
balance. ``total_billed`` is always the sum of the lines and ``balance`` is
always ``total_billed - total_paid``.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal

from school_office.modules.classes.models import FeeKind
from school_office.modules.invoices.models import (
    ADVANCE_CREDIT_LABEL,
    PREVIOUS_DUES_LABEL,
    LineType,
)
from school_office.shared.utils.money import ZERO, round_money, sum_money

DEFAULT_EXTRA_FEE_LABEL = "Medical"

_CARRY_TYPES = (LineType.PREVIOUS_DUES, LineType.ADVANCE_CREDIT)


@dataclass(frozen=True)
class LineItem:
    line_type: LineType
    amount: Decimal
    fee_kind: FeeKind | None = None
    label: str | None = None

    @classmethod
    def standard(cls, kind: FeeKind, amount: Decimal) -> "LineItem":
        return cls(LineType.STANDARD, round_money(amount), fee_kind=FeeKind(kind))

    @classmethod
    def adhoc(cls, label: str, amount: Decimal) -> "LineItem":
        return cls(LineType.ADHOC, round_money(amount), label=label)

    @property
    def is_carry(self) -> bool:
        return self.line_type in _CARRY_TYPES

    @property
    def description(self) -> str:
        if self.line_type == LineType.STANDARD:
            return self.fee_kind.display_name
        if self.line_type == LineType.PREVIOUS_DUES:
            return PREVIOUS_DUES_LABEL
        if self.line_type == LineType.ADVANCE_CREDIT:
            return ADVANCE_CREDIT_LABEL
        return self.label or ""


@dataclass(frozen=True)
class LedgerEntry:
    """Immutable snapshot of one invoice as the chain sees it.

    ``stored_billed`` and ``stored_balance`` hold the invoice's persisted
    totals when the snapshot was read from the database; they are only
    compared against the derived totals and never feed the arithmetic.
    """

    invoice_id: int | None
    lines: tuple[LineItem, ...]
    total_paid: Decimal = ZERO
    stored_billed: Decimal | None = field(default=None, compare=False)
    stored_balance: Decimal | None = field(default=None, compare=False)

    @property
    def total_billed(self) -> Decimal:
        return sum_money(line.amount for line in self.lines)

    @property
    def balance(self) -> Decimal:
        return round_money(self.total_billed - self.total_paid)

    @property
    def carried_in(self) -> Decimal:
        for line in self.lines:
            if line.is_carry:
                return line.amount
        return ZERO

    @property
    def fee_lines(self) -> tuple[LineItem, ...]:
        return tuple(line for line in self.lines if not line.is_carry)

    def with_carried(self, amount: Decimal, carry_credit: bool = True) -> "LedgerEntry":
        """Same fees, carry line replaced for ``amount``."""
        carry = carry_line(amount, carry_credit)
        lines = self.fee_lines if carry is None else (carry, *self.fee_lines)
        return replace(self, lines=lines)


def carry_line(amount: Decimal, carry_credit: bool = True) -> LineItem | None:
    """Line carrying a previous balance, or None when nothing is carried."""
    amount = round_money(amount)
    if amount > 0:
        return LineItem(LineType.PREVIOUS_DUES, amount, label=PREVIOUS_DUES_LABEL)
    if amount < 0 and carry_credit:
        return LineItem(LineType.ADVANCE_CREDIT, amount, label=ADVANCE_CREDIT_LABEL)
    return None


def build_line_items(
    selected_fees: Iterable[FeeKind],
    fee_schedule: Mapping[FeeKind, Decimal],
    *,
    in_tuition: bool = False,
    extra_fee: Decimal = ZERO,
    extra_fee_label: str = DEFAULT_EXTRA_FEE_LABEL,
    previous_balance: Decimal = ZERO,
    carry_credit: bool = True,
) -> tuple[LineItem, ...]:
    """Lines of a freshly generated invoice.

    Selected fees at catalog rates (duplicates dropped), tuition when the
    student is in tuition and it was not selected, the extra fee when
    positive, and the carried previous balance at the head.
    """
    selected: list[FeeKind] = []
    for kind in selected_fees:
        kind = FeeKind(kind)
        if kind not in selected:
            selected.append(kind)

    lines = [LineItem.standard(kind, fee_schedule.get(kind, ZERO)) for kind in selected]

    tuition_fee = round_money(fee_schedule.get(FeeKind.TUITION, ZERO))
    if in_tuition and tuition_fee > 0 and FeeKind.TUITION not in selected:
        lines.append(LineItem.standard(FeeKind.TUITION, tuition_fee))

    extra_fee = round_money(extra_fee)
    if extra_fee > 0:
        lines.append(LineItem.adhoc(extra_fee_label or DEFAULT_EXTRA_FEE_LABEL, extra_fee))

    carry = carry_line(previous_balance, carry_credit)
    if carry is not None:
        lines.insert(0, carry)
    return tuple(lines)


def opening_carry(opening_balance: Decimal | None) -> Decimal:
    return round_money(opening_balance or ZERO)


def repair_chain(
    chain: Sequence[LedgerEntry],
    from_index: int,
    opening_balance: Decimal = ZERO,
    carry_credit: bool = True,
) -> list[LedgerEntry]:
    """Recompute ``chain[from_index:]`` in order.

    Each entry's carry line is rebuilt from the balance of the entry before
    it as already recomputed in this walk (or the opening balance for the
    first entry). Fees and payments are kept. Entries before
    ``from_index`` are read but not changed.
    """
    if from_index < 0:
        raise ValueError("from_index must be >= 0")
    repaired: list[LedgerEntry] = []
    if from_index == 0:
        prior_balance = opening_carry(opening_balance)
    elif from_index <= len(chain):
        prior_balance = chain[from_index - 1].balance
    else:
        return repaired

    for entry in chain[from_index:]:
        fixed = entry.with_carried(prior_balance, carry_credit)
        repaired.append(fixed)
        prior_balance = fixed.balance
    return repaired


def chain_violations(
    chain: Sequence[LedgerEntry],
    opening_balance: Decimal = ZERO,
    carry_credit: bool = True,
) -> list[str]:
    """Describe every place where ``chain`` breaks the carry rule.

    Entries that carry stored totals are also checked against the balance
    identity: stored ``total_billed`` must equal the sum of the lines and
    stored ``balance`` must equal ``total_billed - total_paid``.
    """
    problems: list[str] = []
    expected = repair_chain(chain, 0, opening_balance, carry_credit)
    for index, (actual, wanted) in enumerate(zip(chain, expected)):
        where = f"invoice #{index} ({actual.invoice_id})"
        if actual.carried_in != wanted.carried_in:
            problems.append(
                f"{where}: carries {actual.carried_in}, expected {wanted.carried_in}"
            )
        if actual.stored_billed is not None and round_money(actual.stored_billed) != actual.total_billed:
            problems.append(
                f"{where}: stored total_billed {round_money(actual.stored_billed)}, "
                f"lines sum to {actual.total_billed}"
            )
        if actual.stored_balance is not None and round_money(actual.stored_balance) != actual.balance:
            problems.append(
                f"{where}: stored balance {round_money(actual.stored_balance)}, "
                f"expected {actual.balance}"
            )
    return problems
