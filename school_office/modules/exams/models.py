"""Exam, Subject and Result models."""

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_office.core.database.base import BaseModel


class Exam(BaseModel):
    """An examination held on one date for every class."""

    __tablename__ = "exams"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False)

    results: Mapped[list["Result"]] = relationship(
        "Result", back_populates="exam", cascade="all, delete-orphan"
    )

    __table_args__ = (UniqueConstraint("name", "exam_date", name="uq_exam_name_date"),)


class Subject(BaseModel):
    """Subject taught in a class, with theory and practical full marks."""

    __tablename__ = "subjects"

    class_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("school_classes.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    full_marks_theory: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("100.00")
    )
    full_marks_practical: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0.00")
    )
    # Extra subjects are printed but left out of GPA and totals
    is_extra: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    school_class: Mapped["SchoolClass"] = relationship("SchoolClass")
    results: Mapped[list["Result"]] = relationship(
        "Result", back_populates="subject", cascade="all, delete-orphan"
    )

    @property
    def full_marks(self) -> Decimal:
        return (self.full_marks_theory or Decimal("0")) + (self.full_marks_practical or Decimal("0"))


class Result(BaseModel):
    """Marks of one student in one subject for one exam."""

    __tablename__ = "results"

    exam_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )
    subject_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    theory_marks: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0.00")
    )
    practical_marks: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0.00")
    )

    exam: Mapped["Exam"] = relationship("Exam", back_populates="results")
    subject: Mapped["Subject"] = relationship("Subject", back_populates="results")
    student: Mapped["Student"] = relationship("Student")

    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", "subject_id", name="uq_result_exam_student_subject"),
    )


# Import at the end to avoid circular imports
from school_office.modules.classes.models import SchoolClass  # noqa: E402
from school_office.modules.students.models import Student  # noqa: E402
