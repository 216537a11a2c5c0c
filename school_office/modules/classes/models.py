"""SchoolClass and ClassFee (fee catalog) models."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_office.core.database.base import Base, BigIntPK, utcnow


class FeeKind(StrEnum):
    """Closed set of fees a class can charge."""

    REGISTRATION = "registration"
    MONTHLY = "monthly"
    EXAM = "exam"
    SPORTS = "sports"
    MUSIC = "music"
    MEDICAL = "medical"
    TUITION = "tuition"
    STATIONERY = "stationery"
    TIE_BELT = "tieBelt"

    @property
    def display_name(self) -> str:
        if self is FeeKind.TIE_BELT:
            return "Tie & Belt"
        return self.value.capitalize()


class SchoolClass(Base):
    """A class/section with its fee schedule."""

    __tablename__ = "school_classes"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    section: Mapped[str] = mapped_column(String(20), nullable=False, default="")

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
    fees: Mapped[list["ClassFee"]] = relationship(
        "ClassFee", back_populates="school_class", cascade="all, delete-orphan"
    )
    students: Mapped[list["Student"]] = relationship("Student", back_populates="school_class")

    __table_args__ = (
        UniqueConstraint("name", "section", name="uq_school_class_name_section"),
    )

    @property
    def display_name(self) -> str:
        return f"{self.name} {self.section}".strip()

    @property
    def fee_schedule(self) -> dict[FeeKind, Decimal]:
        """Amount per fee kind; kinds without a row read as 0.

        Note: fees must be loaded.
        """
        schedule = {kind: Decimal("0.00") for kind in FeeKind}
        for fee in self.fees:
            schedule[FeeKind(fee.fee_kind)] = fee.amount
        return schedule

    def fee_amount(self, kind: FeeKind) -> Decimal:
        return self.fee_schedule[FeeKind(kind)]


class ClassFee(Base):
    """One entry of a class fee schedule. Overwritten in place, no history."""

    __tablename__ = "class_fees"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("school_classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fee_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )

    school_class: Mapped["SchoolClass"] = relationship("SchoolClass", back_populates="fees")

    __table_args__ = (
        UniqueConstraint("class_id", "fee_kind", name="uq_class_fee_kind"),
    )


# Import at the end to avoid circular imports
from school_office.modules.students.models import Student  # noqa: E402
