"""Marksheet grading: percentage bands, GPA and totals."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class Grade:
    letter: str
    grade_point: Decimal
    remarks: str


NON_GRADED = Grade("NG", Decimal("0.0"), "NON-GRADED")

# (lowest percentage, grade), highest band first
GRADE_SCALE: tuple[tuple[Decimal, Grade], ...] = (
    (Decimal("90"), Grade("A+", Decimal("4.0"), "OUTSTANDING")),
    (Decimal("80"), Grade("A", Decimal("3.6"), "EXCELLENT")),
    (Decimal("70"), Grade("B+", Decimal("3.2"), "VERY GOOD")),
    (Decimal("60"), Grade("B", Decimal("2.8"), "GOOD")),
    (Decimal("50"), Grade("C+", Decimal("2.4"), "SATISFACTORY")),
    (Decimal("40"), Grade("C", Decimal("2.0"), "ACCEPTABLE")),
    (Decimal("35"), Grade("D", Decimal("1.6"), "BASIC")),
)


def round2(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def percentage_of(obtained: Decimal, full: Decimal) -> Decimal:
    """Unrounded percentage; 0 when full marks are 0."""
    if not full:
        return Decimal("0.00")
    return Decimal(obtained) * _HUNDRED / Decimal(full)


def grade_for(percentage: Decimal) -> Grade:
    for lowest, grade in GRADE_SCALE:
        if percentage >= lowest:
            return grade
    return NON_GRADED


@dataclass(frozen=True)
class SubjectMark:
    """One marksheet row."""

    subject_id: int | None
    code: str
    name: str
    full_marks_theory: Decimal
    full_marks_practical: Decimal
    theory_marks: Decimal
    practical_marks: Decimal
    is_extra: bool = False

    @property
    def full_marks(self) -> Decimal:
        return self.full_marks_theory + self.full_marks_practical

    @property
    def obtained_marks(self) -> Decimal:
        return self.theory_marks + self.practical_marks

    @property
    def percentage(self) -> Decimal:
        return percentage_of(self.obtained_marks, self.full_marks)

    @property
    def grade(self) -> Grade:
        return grade_for(self.percentage)


@dataclass(frozen=True)
class MarksheetTotals:
    full_marks: Decimal
    obtained_marks: Decimal
    percentage: Decimal
    gpa: Decimal
    grade: Grade


def marksheet_totals(marks: Iterable[SubjectMark]) -> MarksheetTotals:
    """Totals over core subjects; extra subjects do not count."""
    core = [mark for mark in marks if not mark.is_extra]
    full = sum((mark.full_marks for mark in core), Decimal("0"))
    obtained = sum((mark.obtained_marks for mark in core), Decimal("0"))
    if core:
        gpa = round2(sum((mark.grade.grade_point for mark in core), Decimal("0")) / len(core))
    else:
        gpa = Decimal("0.00")
    percentage = percentage_of(obtained, full)
    return MarksheetTotals(
        full_marks=full,
        obtained_marks=obtained,
        percentage=percentage,
        gpa=gpa,
        grade=grade_for(percentage),
    )
