"""Invoice and InvoiceLine models."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_office.core.database.base import Base, BigIntPK, utcnow


class BikramMonth(StrEnum):
    """Billing months (Bikram Sambat), in calendar order."""

    BAISAKH = "Baisakh"
    JESTHA = "Jestha"
    ASHADH = "Ashadh"
    SHRAWAN = "Shrawan"
    BHADRA = "Bhadra"
    ASHWIN = "Ashwin"
    KARTIK = "Kartik"
    MANGSIR = "Mangsir"
    POUSH = "Poush"
    MAGH = "Magh"
    FALGUN = "Falgun"
    CHAITRA = "Chaitra"


class LineType(StrEnum):
    """Invoice line kinds."""

    STANDARD = "standard"  # catalog fee, fee_kind set
    ADHOC = "adhoc"  # one-off extra fee, label set
    PREVIOUS_DUES = "previous_dues"  # carried unpaid balance, always first
    ADVANCE_CREDIT = "advance_credit"  # carried overpayment (negative), always first


PREVIOUS_DUES_LABEL = "Previous Dues"
ADVANCE_CREDIT_LABEL = "Advance Credit"


class PaymentState(StrEnum):
    PAID = "Paid"
    PARTIAL = "Partial"
    UNPAID = "Unpaid"
    OVERPAID = "Overpaid"


class Invoice(Base):
    """One student's bill for one (month, year)."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )

    # Relations
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )
    class_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("school_classes.id"), nullable=False, index=True
    )

    # Billing period
    month: Mapped[str] = mapped_column(String(20), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Amounts; balance may go negative (credit)
    total_billed: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    total_paid: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )

    # Chain ordering key; refreshed when the invoice is regenerated
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student")
    school_class: Mapped["SchoolClass"] = relationship("SchoolClass")
    lines: Mapped[list["InvoiceLine"]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.position",
    )
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        order_by="Payment.paid_at",
    )

    __table_args__ = (
        UniqueConstraint("student_id", "month", "year", name="uq_invoice_student_period"),
        Index("ix_invoices_student_chain", "student_id", "created_at", "id"),
    )

    @property
    def period_label(self) -> str:
        return f"{self.month} {self.year}"

    @property
    def carried_amount(self) -> Decimal:
        """Signed amount carried in from the previous invoice (0 if none).

        Note: lines must be loaded.
        """
        for line in self.lines:
            if line.is_carry:
                return line.amount
        return Decimal("0.00")

    @property
    def previous_dues(self) -> Decimal:
        """Positive Previous Dues line amount, else 0."""
        amount = self.carried_amount
        return amount if amount > 0 else Decimal("0.00")

    @property
    def current_charges(self) -> Decimal:
        """Total of this period's own fees (carry lines excluded)."""
        return sum(
            (line.amount for line in self.lines if not line.is_carry), Decimal("0.00")
        )

    @property
    def payment_state(self) -> PaymentState:
        if self.balance < 0:
            return PaymentState.OVERPAID
        if self.balance == 0:
            return PaymentState.PAID
        if self.total_paid > 0:
            return PaymentState.PARTIAL
        return PaymentState.UNPAID

    @property
    def status(self) -> str:
        return self.payment_state.value


class InvoiceLine(Base):
    """Line item in an invoice."""

    __tablename__ = "invoice_lines"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    line_type: Mapped[str] = mapped_column(String(20), nullable=False)
    fee_kind: Mapped[str | None] = mapped_column(String(20), nullable=True)  # standard only
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="lines")

    @property
    def is_carry(self) -> bool:
        return self.line_type in (LineType.PREVIOUS_DUES.value, LineType.ADVANCE_CREDIT.value)


# Import at the end to avoid circular imports
from school_office.modules.students.models import Student  # noqa: E402
from school_office.modules.classes.models import SchoolClass  # noqa: E402
from school_office.modules.payments.models import Payment  # noqa: E402
