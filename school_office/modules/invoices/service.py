"""Service for Invoices module (invoice ledger and bulk generation)."""

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_office.core.audit import AuditAction, AuditService
from school_office.core.config import settings
from school_office.core.database.base import utcnow
from school_office.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix
from school_office.core.exceptions import (
    AppException,
    ConflictError,
    NotFoundError,
    PartialRepairError,
    ValidationError,
)
from school_office.modules.classes.models import FeeKind, SchoolClass
from school_office.modules.invoices.ledger import (
    DEFAULT_EXTRA_FEE_LABEL,
    LedgerEntry,
    LineItem,
    build_line_items,
    chain_violations,
    repair_chain,
)
from school_office.modules.invoices.models import BikramMonth, Invoice, InvoiceLine, LineType
from school_office.modules.invoices.schemas import (
    BulkInvoiceFailure,
    BulkInvoiceRequest,
    BulkInvoiceResult,
    ChainRepairResult,
    InvoiceGenerateRequest,
)
from school_office.modules.students.models import Student
from school_office.shared.utils.money import ZERO, round_money

logger = logging.getLogger(__name__)


class InvoiceService:
    """Service for the per-student invoice chain."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    @property
    def carry_credit(self) -> bool:
        return settings.carry_forward_credit

    # --- Helper Methods ---

    async def lock_student(self, student_id: int) -> Student:
        """Load the student row FOR UPDATE.

        Every ledger mutation of a student takes this lock first, so two
        requests never walk the same chain at once (no-op on SQLite).
        """
        result = await self.db.execute(
            select(Student).where(Student.id == student_id).with_for_update()
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    async def lock_class_students(self, class_id: int) -> list[Student]:
        """Lock every student of a class FOR UPDATE, in id order, in one statement.

        Bulk generation takes this before any document number, so a single
        generation for one of these students waits on the student row and
        never holds it while waiting on the INV sequence. Returned in roll
        order.
        """
        result = await self.db.execute(
            select(Student)
            .where(Student.class_id == class_id)
            .order_by(Student.id)
            .with_for_update()
        )
        return sorted(
            result.scalars().all(),
            key=lambda s: (s.roll_number is None, s.roll_number or 0, s.name, s.id),
        )

    async def _get_class(self, class_id: int) -> SchoolClass:
        result = await self.db.execute(
            select(SchoolClass)
            .where(SchoolClass.id == class_id)
            .options(selectinload(SchoolClass.fees))
        )
        school_class = result.scalar_one_or_none()
        if not school_class:
            raise NotFoundError("Class", class_id)
        return school_class

    @staticmethod
    def _validate_fees(selected_fees: Iterable[str | FeeKind]) -> list[FeeKind]:
        kinds: list[FeeKind] = []
        for value in selected_fees:
            try:
                kinds.append(FeeKind(value))
            except ValueError:
                raise ValidationError(f"Unknown fee kind '{value}'", field="selected_fees")
        return kinds

    @staticmethod
    def _validate_month(month: str | BikramMonth) -> str:
        try:
            return BikramMonth(month).value
        except ValueError:
            raise ValidationError(f"Unknown month '{month}'", field="month")

    async def load_chain(self, student_id: int) -> list[Invoice]:
        """All invoices of a student, oldest first (the chain order)."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.student_id == student_id)
            .options(selectinload(Invoice.lines), selectinload(Invoice.payments))
            .order_by(Invoice.created_at, Invoice.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def to_entry(invoice: Invoice) -> LedgerEntry:
        """Snapshot an invoice for the pure ledger functions."""
        lines = tuple(
            LineItem(
                line_type=LineType(line.line_type),
                amount=round_money(line.amount),
                fee_kind=FeeKind(line.fee_kind) if line.fee_kind else None,
                label=line.label,
            )
            for line in invoice.lines
        )
        return LedgerEntry(
            invoice_id=invoice.id,
            lines=lines,
            total_paid=round_money(invoice.total_paid or ZERO),
            stored_billed=invoice.total_billed,
            stored_balance=invoice.balance,
        )

    @staticmethod
    def _apply_entry(invoice: Invoice, entry: LedgerEntry) -> bool:
        """Write an entry's lines and totals onto the invoice; True if anything changed."""
        wanted = [
            (
                line.line_type.value,
                round_money(line.amount),
                line.fee_kind.value if line.fee_kind else None,
                line.description,
            )
            for line in entry.lines
        ]
        current = [
            (line.line_type, round_money(line.amount), line.fee_kind, line.label)
            for line in invoice.lines
        ]
        changed = False
        if wanted != current:
            invoice.lines = [
                InvoiceLine(
                    position=position,
                    line_type=line_type,
                    fee_kind=fee_kind,
                    label=label,
                    amount=amount,
                )
                for position, (line_type, amount, fee_kind, label) in enumerate(wanted)
            ]
            changed = True

        total_billed = entry.total_billed
        balance = round_money(total_billed - round_money(invoice.total_paid or ZERO))
        if invoice.total_billed is None or round_money(invoice.total_billed) != total_billed:
            invoice.total_billed = total_billed
            changed = True
        if invoice.balance is None or round_money(invoice.balance) != balance:
            invoice.balance = balance
            changed = True
        return changed

    async def persist_repair(
        self,
        student_id: int,
        chain: Sequence[Invoice],
        repaired: Sequence[LedgerEntry],
        start: int,
    ) -> int:
        """Write a recomputed chain suffix, flushing invoice by invoice.

        Returns how many invoices changed. A storage failure rolls the
        session back and raises PartialRepairError naming the last invoice
        that was written and the one that failed.
        """
        rewritten = 0
        last_repaired_id: int | None = None
        for invoice, entry in zip(chain[start:], repaired):
            changed = self._apply_entry(invoice, entry)
            if changed:
                try:
                    await self.db.flush()
                except SQLAlchemyError as exc:
                    logger.error(
                        "Chain repair of student %s failed at invoice %s after %s: %s",
                        student_id,
                        invoice.id,
                        last_repaired_id,
                        exc,
                    )
                    await self.db.rollback()
                    raise PartialRepairError(
                        student_id=student_id,
                        last_repaired_invoice_id=last_repaired_id,
                        failed_invoice_id=invoice.id,
                        reason=exc.__class__.__name__,
                    ) from exc
                rewritten += 1
            last_repaired_id = invoice.id
        return rewritten

    # --- Invoice Generation ---

    async def generate_or_update_invoice(self, data: InvoiceGenerateRequest) -> Invoice:
        """Create the student's invoice for (month, year), or rebuild it if it exists."""
        invoice, _ = await self._generate(
            student_id=data.student_id,
            class_id=data.class_id,
            month=data.month,
            year=data.year,
            selected_fees=data.selected_fees,
            extra_fee=data.extra_fee,
            extra_fee_label=data.extra_fee_label,
            allow_rebill=data.allow_rebill_after_payment,
        )
        await self.db.commit()
        return await self.get_invoice_by_id(invoice.id)

    async def _generate(
        self,
        student_id: int,
        class_id: int | None,
        month: str | BikramMonth,
        year: int,
        selected_fees: Iterable[str | FeeKind],
        extra_fee: Decimal = ZERO,
        extra_fee_label: str = DEFAULT_EXTRA_FEE_LABEL,
        allow_rebill: bool | None = None,
    ) -> tuple[Invoice, bool]:
        """Build one invoice without committing. Returns (invoice, created)."""
        student = await self.lock_student(student_id)
        school_class = await self._get_class(class_id if class_id is not None else student.class_id)
        selected = self._validate_fees(selected_fees)
        month = self._validate_month(month)
        if allow_rebill is None:
            allow_rebill = settings.allow_rebill_after_payment

        chain = await self.load_chain(student.id)
        existing = next(
            (inv for inv in chain if inv.month == month and inv.year == year), None
        )
        if existing is not None and not allow_rebill and (
            existing.payments or round_money(existing.total_paid) != ZERO
        ):
            raise ConflictError(
                f"Invoice {existing.invoice_number} for {month} {year} already has payments "
                "and cannot be regenerated"
            )

        fee_lines = build_line_items(
            selected,
            school_class.fee_schedule,
            in_tuition=student.in_tuition,
            extra_fee=extra_fee,
            extra_fee_label=extra_fee_label,
            carry_credit=self.carry_credit,
        )

        if existing is None:
            number_gen = DocumentNumberGenerator(self.db)
            invoice = Invoice(
                invoice_number=await number_gen.generate(DocumentPrefix.INVOICE),
                student_id=student.id,
                class_id=school_class.id,
                month=month,
                year=year,
                total_billed=ZERO,
                total_paid=ZERO,
                balance=ZERO,
                created_at=utcnow(),
            )
            invoice.lines = []
            invoice.payments = []
            self.db.add(invoice)
            others = chain
            start = len(chain)
        else:
            invoice = existing
            start = chain.index(existing)
            others = [inv for inv in chain if inv is not existing]
            invoice.class_id = school_class.id
            # Regenerating moves the invoice to the end of the chain
            invoice.created_at = utcnow()

        ordered = [*others, invoice]
        entries = [self.to_entry(inv) for inv in others]
        entries.append(
            LedgerEntry(
                invoice_id=invoice.id,
                lines=fee_lines,
                total_paid=round_money(invoice.total_paid or ZERO),
            )
        )
        repaired = repair_chain(entries, start, student.opening_balance, self.carry_credit)
        # Only invoices that used to follow a regenerated one are rewritten besides it
        await self.persist_repair(student.id, ordered, repaired, start)
        await self.db.flush()

        created = existing is None
        await self.audit.log(
            action=AuditAction.GENERATE_INVOICE if created else AuditAction.REGENERATE_INVOICE,
            entity_type="Invoice",
            entity_id=invoice.id,
            entity_identifier=invoice.invoice_number,
            new_values={
                "student_id": student.id,
                "period": f"{month} {year}",
                "fees": [kind.value for kind in selected],
                "total_billed": str(invoice.total_billed),
                "total_paid": str(invoice.total_paid),
                "balance": str(invoice.balance),
            },
        )
        logger.info(
            "%s invoice %s for student %s (%s %s): billed %s, balance %s",
            "Created" if created else "Regenerated",
            invoice.invoice_number,
            student.id,
            month,
            year,
            invoice.total_billed,
            invoice.balance,
        )
        return invoice, created

    async def bulk_generate(
        self, class_id: int, data: BulkInvoiceRequest
    ) -> BulkInvoiceResult:
        """Generate or update the month's invoice for every student of a class.

        Students whose invoice is refused (e.g. by the rebill policy) are
        reported in ``failed``; the others are still invoiced. A storage
        error aborts the whole batch.
        """
        school_class = await self._get_class(class_id)
        selected = self._validate_fees(data.selected_fees)
        month = self._validate_month(data.month)

        students = await self.lock_class_students(class_id)

        created = 0
        updated = 0
        failed: list[BulkInvoiceFailure] = []
        for student in students:
            try:
                _, was_created = await self._generate(
                    student_id=student.id,
                    class_id=school_class.id,
                    month=month,
                    year=data.year,
                    selected_fees=selected,
                )
            except PartialRepairError:
                raise
            except AppException as exc:
                logger.warning(
                    "Bulk invoicing skipped student %s (%s %s): %s",
                    student.id,
                    month,
                    data.year,
                    exc.message,
                )
                failed.append(
                    BulkInvoiceFailure(
                        student_id=student.id,
                        student_name=student.name,
                        message=exc.message,
                    )
                )
                continue
            if was_created:
                created += 1
            else:
                updated += 1

        await self.audit.log(
            action=AuditAction.BULK_GENERATE_INVOICES,
            entity_type="SchoolClass",
            entity_id=class_id,
            entity_identifier=school_class.display_name,
            new_values={
                "period": f"{month} {data.year}",
                "fees": [kind.value for kind in selected],
                "created": created,
                "updated": updated,
                "failed": [f.student_id for f in failed],
            },
        )

        await self.db.commit()
        logger.info(
            "Bulk invoicing of class %s for %s %s: %s created, %s updated, %s failed",
            class_id,
            month,
            data.year,
            created,
            updated,
            len(failed),
        )
        return BulkInvoiceResult(
            created=created,
            updated=updated,
            failed=failed,
            total_students=len(students),
        )

    # --- Chain Repair ---

    async def repair_student_chain(
        self, student_id: int, from_invoice_id: int | None = None
    ) -> ChainRepairResult:
        """Recompute the student's chain from an invoice (default: the first)."""
        student = await self.lock_student(student_id)
        chain = await self.load_chain(student_id)

        start = 0
        if from_invoice_id is not None:
            start = next(
                (index for index, inv in enumerate(chain) if inv.id == from_invoice_id), None
            )
            if start is None:
                raise NotFoundError("Invoice", from_invoice_id)

        entries = [self.to_entry(inv) for inv in chain]
        repaired = repair_chain(entries, start, student.opening_balance, self.carry_credit)
        rewritten = await self.persist_repair(student_id, chain, repaired, start)

        if rewritten:
            await self.audit.log(
                action=AuditAction.REPAIR_CHAIN,
                entity_type="Student",
                entity_id=student_id,
                entity_identifier=student.student_number,
                new_values={"from_invoice_id": from_invoice_id, "rewritten": rewritten},
            )
            logger.info("Repaired %s invoice(s) of student %s", rewritten, student_id)

        await self.db.commit()
        return ChainRepairResult(
            student_id=student_id,
            invoices_checked=len(repaired),
            invoices_rewritten=rewritten,
        )

    async def chain_problems(self, student_id: int) -> list[str]:
        """Carry-rule and stored-total mismatches in the student's chain, without repairing."""
        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        chain = await self.load_chain(student_id)
        entries = [self.to_entry(inv) for inv in chain]
        return chain_violations(entries, student.opening_balance, self.carry_credit)

    # --- Queries ---

    async def get_invoice_by_id(self, invoice_id: int) -> Invoice:
        """Get invoice by ID with lines, payments, student and class loaded."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .options(
                selectinload(Invoice.lines),
                selectinload(Invoice.payments),
                selectinload(Invoice.student),
                selectinload(Invoice.school_class).selectinload(SchoolClass.fees),
            )
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    async def find_invoice(self, student_id: int, month: str, year: int) -> Invoice | None:
        """Invoice for (student, month, year), if any."""
        result = await self.db.execute(
            select(Invoice)
            .where(
                Invoice.student_id == student_id,
                Invoice.month == month,
                Invoice.year == year,
            )
            .options(selectinload(Invoice.lines), selectinload(Invoice.payments))
        )
        return result.scalar_one_or_none()

    async def list_invoices_for_student(self, student_id: int) -> list[Invoice]:
        """Invoices of a student, newest first."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.student_id == student_id)
            .options(selectinload(Invoice.lines), selectinload(Invoice.payments))
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        )
        return list(result.scalars().all())

    async def latest_invoice(self, student_id: int) -> Invoice | None:
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.student_id == student_id)
            .options(selectinload(Invoice.lines), selectinload(Invoice.payments))
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def invoices_exist_for_month(self, class_id: int, month: str, year: int) -> bool:
        """True if any invoice of the class is billed for (month, year)."""
        result = await self.db.execute(
            select(func.count())
            .select_from(Invoice)
            .where(
                Invoice.class_id == class_id,
                Invoice.month == month,
                Invoice.year == year,
            )
        )
        return (result.scalar() or 0) > 0

    async def list_invoices_for_class_month(
        self, class_id: int, month: str, year: int
    ) -> list[Invoice]:
        """Invoices billed to a class for (month, year), by roll number."""
        result = await self.db.execute(
            select(Invoice)
            .join(Student, Student.id == Invoice.student_id)
            .where(
                Invoice.class_id == class_id,
                Invoice.month == month,
                Invoice.year == year,
            )
            .options(
                selectinload(Invoice.lines),
                selectinload(Invoice.payments),
                selectinload(Invoice.student),
                selectinload(Invoice.school_class),
            )
            .order_by(Student.roll_number, Student.name, Student.id)
        )
        return list(result.scalars().all())
