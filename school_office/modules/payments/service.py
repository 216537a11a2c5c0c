"""Service for Payments module."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_office.core.audit import AuditAction, AuditService
from school_office.core.config import settings
from school_office.core.database.base import utcnow
from school_office.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix
from school_office.core.exceptions import NotFoundError, ValidationError
from school_office.modules.classes.models import SchoolClass
from school_office.modules.invoices.ledger import repair_chain
from school_office.modules.invoices.models import Invoice
from school_office.modules.invoices.service import InvoiceService
from school_office.modules.payments.models import Payment
from school_office.modules.payments.schemas import PaymentCreate
from school_office.modules.students.models import Student
from school_office.shared.utils.money import ZERO, round_money

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for recording payments against invoices."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.invoices = InvoiceService(db)

    async def add_payment(self, data: PaymentCreate) -> Payment:
        """
        Apply a payment to one invoice and carry the new balance forward.

        Every invoice created after the paid one gets its carry line and
        totals recomputed, in the same transaction as the payment.
        """
        amount = round_money(data.amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be positive", field="amount")

        student = await self.invoices.lock_student(data.student_id)
        chain = await self.invoices.load_chain(student.id)
        index = next((i for i, inv in enumerate(chain) if inv.id == data.invoice_id), None)
        if index is None:
            exists = await self.db.execute(select(Invoice.id).where(Invoice.id == data.invoice_id))
            if exists.scalar_one_or_none() is None:
                raise NotFoundError("Invoice", data.invoice_id)
            raise ValidationError(
                f"Invoice {data.invoice_id} does not belong to student {student.id}",
                field="invoice_id",
            )
        invoice = chain[index]

        number_gen = DocumentNumberGenerator(self.db)
        payment = Payment(
            receipt_number=await number_gen.generate(DocumentPrefix.RECEIPT),
            invoice_id=invoice.id,
            student_id=student.id,
            amount=amount,
            paid_at=utcnow(),
        )
        self.db.add(payment)
        invoice.payments.append(payment)
        invoice.total_paid = round_money((invoice.total_paid or ZERO) + amount)
        invoice.balance = round_money(invoice.total_billed - invoice.total_paid)
        await self.db.flush()

        entries = [self.invoices.to_entry(inv) for inv in chain]
        repaired = repair_chain(
            entries, index + 1, student.opening_balance, settings.carry_forward_credit
        )
        rewritten = await self.invoices.persist_repair(student.id, chain, repaired, index + 1)

        await self.audit.log(
            action=AuditAction.ADD_PAYMENT,
            entity_type="Payment",
            entity_id=payment.id,
            entity_identifier=payment.receipt_number,
            new_values={
                "invoice_id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "amount": str(amount),
                "invoice_balance": str(invoice.balance),
                "later_invoices_rewritten": rewritten,
            },
        )

        await self.db.commit()
        logger.info(
            "Payment %s of %s on invoice %s (student %s); %s later invoice(s) updated",
            payment.receipt_number,
            amount,
            invoice.invoice_number,
            student.id,
            rewritten,
        )
        return await self.get_payment_by_id(payment.id)

    async def get_payment_by_id(self, payment_id: int) -> Payment:
        """Get payment with its invoice and student loaded."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .options(
                selectinload(Payment.invoice).selectinload(Invoice.lines),
                selectinload(Payment.invoice).selectinload(Invoice.student),
                selectinload(Payment.invoice)
                .selectinload(Invoice.school_class)
                .selectinload(SchoolClass.fees),
                selectinload(Payment.student),
            )
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def list_payments_for_student(self, student_id: int) -> list[Payment]:
        """Payments of a student, newest first."""
        exists = await self.db.execute(select(Student.id).where(Student.id == student_id))
        if exists.scalar_one_or_none() is None:
            raise NotFoundError("Student", student_id)
        result = await self.db.execute(
            select(Payment)
            .where(Payment.student_id == student_id)
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())
