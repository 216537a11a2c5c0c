"""Fee summaries per class and month."""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_office.core.exceptions import NotFoundError
from school_office.modules.classes.models import SchoolClass
from school_office.modules.invoices.models import Invoice, PaymentState
from school_office.modules.invoices.schemas import InvoiceSummary
from school_office.modules.reports.schemas import (
    ClassFeeSummary,
    ClassMonthSummary,
    StudentMonthStatus,
)
from school_office.modules.students.models import Student
from school_office.shared.utils.money import ZERO, round_money, sum_money


def student_fee_status(invoice: Invoice | None, overall_balance: Decimal) -> PaymentState:
    """Status shown for a student in a month.

    ``invoice`` is the student's invoice for the month, ``overall_balance``
    the balance of their latest invoice (or opening balance).
    """
    if invoice is None:
        return PaymentState.UNPAID
    if overall_balance < 0:
        return PaymentState.OVERPAID
    if overall_balance == 0:
        return PaymentState.PAID
    if invoice.payments or (invoice.total_paid or ZERO) > 0:
        return PaymentState.PARTIAL
    return PaymentState.UNPAID


class ReportService:
    """Read-only fee summaries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _latest_invoices(self, student_ids: list[int]) -> dict[int, Invoice]:
        """Latest invoice (chain tail) per student."""
        if not student_ids:
            return {}
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.student_id.in_(student_ids))
            .order_by(Invoice.student_id, Invoice.created_at.desc(), Invoice.id.desc())
        )
        latest: dict[int, Invoice] = {}
        for invoice in result.scalars().all():
            latest.setdefault(invoice.student_id, invoice)
        return latest

    @staticmethod
    def _overall_balance(student: Student, latest: Invoice | None) -> Decimal:
        if latest is None:
            return round_money(student.opening_balance or ZERO)
        return round_money(latest.balance)

    async def class_month_summary(self, class_id: int, month: str, year: int) -> ClassMonthSummary:
        """Per-student status and totals of a class for (month, year)."""
        class_row = await self.db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
        school_class = class_row.scalar_one_or_none()
        if not school_class:
            raise NotFoundError("Class", class_id)

        student_rows = await self.db.execute(
            select(Student)
            .where(Student.class_id == class_id)
            .order_by(Student.roll_number, Student.name, Student.id)
        )
        students = list(student_rows.scalars().all())
        student_ids = [s.id for s in students]

        month_invoices: dict[int, Invoice] = {}
        if student_ids:
            result = await self.db.execute(
                select(Invoice)
                .where(
                    Invoice.student_id.in_(student_ids),
                    Invoice.month == month,
                    Invoice.year == year,
                )
                .options(selectinload(Invoice.lines), selectinload(Invoice.payments))
            )
            month_invoices = {inv.student_id: inv for inv in result.scalars().all()}
        latest = await self._latest_invoices(student_ids)

        rows: list[StudentMonthStatus] = []
        balances: list[Decimal] = []
        for student in students:
            invoice = month_invoices.get(student.id)
            overall = self._overall_balance(student, latest.get(student.id))
            balances.append(overall)
            rows.append(
                StudentMonthStatus(
                    student_id=student.id,
                    student_name=student.name,
                    roll_number=student.roll_number,
                    invoice=InvoiceSummary.model_validate(invoice) if invoice else None,
                    overall_balance=float(overall),
                    status=student_fee_status(invoice, overall).value,
                )
            )

        return ClassMonthSummary(
            class_id=class_id,
            class_name=school_class.display_name,
            month=month,
            year=year,
            students=rows,
            total_billed=float(sum_money(inv.current_charges for inv in month_invoices.values())),
            total_collected=float(sum_money(inv.total_paid for inv in month_invoices.values())),
            total_dues=float(sum_money(balances)),
        )

    async def class_fee_summaries(self) -> list[ClassFeeSummary]:
        """Totals per class from each student's latest invoice."""
        classes = await self.db.execute(
            select(SchoolClass)
            .options(selectinload(SchoolClass.students))
            .order_by(SchoolClass.name, SchoolClass.section)
        )
        classes = list(classes.scalars().all())
        latest = await self._latest_invoices(
            [student.id for school_class in classes for student in school_class.students]
        )

        summaries: list[ClassFeeSummary] = []
        for school_class in classes:
            billed: list[Decimal] = []
            collected: list[Decimal] = []
            dues: list[Decimal] = []
            for student in school_class.students:
                invoice = latest.get(student.id)
                if invoice is not None:
                    billed.append(invoice.total_billed)
                    collected.append(invoice.total_paid)
                dues.append(self._overall_balance(student, invoice))
            summaries.append(
                ClassFeeSummary(
                    class_id=school_class.id,
                    class_name=school_class.display_name,
                    student_count=len(school_class.students),
                    total_billed=float(sum_money(billed)),
                    total_collected=float(sum_money(collected)),
                    total_dues=float(sum_money(dues)),
                )
            )
        return summaries
