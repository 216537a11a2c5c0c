"""Schemas for Exams module."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


# --- Exam Schemas ---


class ExamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    # Required; checked by the service so the error names the field
    exam_date: date | None = None


class ExamUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    exam_date: date | None = None


class ExamResponse(BaseModel):
    id: int
    name: str
    exam_date: date

    model_config = {"from_attributes": True}


# --- Subject Schemas ---


class SubjectCreate(BaseModel):
    """Schema for adding a subject to a class."""

    class_id: int
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field("", max_length=50)
    full_marks_theory: Decimal = Field(default=Decimal("100"), ge=0)
    full_marks_practical: Decimal = Field(default=Decimal("0"), ge=0)
    is_extra: bool = False


class SubjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    code: str | None = Field(None, max_length=50)
    full_marks_theory: Decimal | None = Field(None, ge=0)
    full_marks_practical: Decimal | None = Field(None, ge=0)
    is_extra: bool | None = None


class SubjectResponse(BaseModel):
    id: int
    class_id: int
    name: str
    code: str
    full_marks_theory: float
    full_marks_practical: float
    is_extra: bool

    model_config = {"from_attributes": True}


# --- Result Schemas ---


class ResultUpsert(BaseModel):
    """Marks of one student in one subject (created or replaced)."""

    student_id: int
    subject_id: int
    theory_marks: Decimal = Field(default=Decimal("0"), ge=0)
    practical_marks: Decimal = Field(default=Decimal("0"), ge=0)


class ResultResponse(BaseModel):
    id: int
    exam_id: int
    student_id: int
    subject_id: int
    theory_marks: float
    practical_marks: float

    model_config = {"from_attributes": True}


# --- Marksheet ---


class MarksheetLine(BaseModel):
    subject_id: int | None
    code: str
    name: str
    full_marks_theory: float
    full_marks_practical: float
    theory_marks: float
    practical_marks: float
    percentage: float
    grade: str
    grade_point: float
    remarks: str
    is_extra: bool


class MarksheetResponse(BaseModel):
    exam_id: int
    exam_name: str
    exam_date: date
    student_id: int
    student_name: str
    roll_number: int | None
    class_name: str
    subjects: list[MarksheetLine]
    total_full_marks: float
    total_obtained_marks: float
    percentage: float
    gpa: float
    grade: str
    remarks: str
