"""Payment model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_office.core.database.base import Base, BigIntPK, utcnow


class Payment(Base):
    """
    Payment applied to exactly one invoice.

    Immutable once created: never edited or removed (refunds are not
    supported). Its receipt number identifies the printed receipt.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    receipt_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )

    invoice_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("invoices.id"), nullable=False, index=True
    )
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="payments")
    student: Mapped["Student"] = relationship("Student")


# Import at the end to avoid circular imports
from school_office.modules.invoices.models import Invoice  # noqa: E402
from school_office.modules.students.models import Student  # noqa: E402
