"""Student model."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_office.core.database.base import Base, BigIntPK, utcnow


class Student(Base):
    """Student enrolled in a class."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    student_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )  # STU-YYYY-NNNNNN

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    roll_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    class_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("school_classes.id"), nullable=False, index=True
    )
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Debt carried in from before the system; seeds the first invoice's Previous Dues
    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00"), server_default="0.00"
    )
    # Tuition fee is added to every generated invoice
    in_tuition: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    total_attendance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    present_attendance: Mapped[int | None] = mapped_column(Integer, nullable=True)

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
    school_class: Mapped["SchoolClass"] = relationship("SchoolClass", back_populates="students")


# Import at the end to avoid circular imports
from school_office.modules.classes.models import SchoolClass  # noqa: E402
