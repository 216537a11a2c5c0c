"""Schemas for Students module."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator


class StudentCreate(BaseModel):
    """Schema for enrolling a student."""

    name: str = Field(..., min_length=1, max_length=200)
    class_id: int
    roll_number: int | None = Field(None, ge=0)
    address: str | None = None
    date_of_birth: date | None = None
    opening_balance: Decimal = Field(default=Decimal("0.00"), ge=0)
    in_tuition: bool = False
    total_attendance: int | None = Field(None, ge=0)
    present_attendance: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def validate_attendance(self):
        if (
            self.total_attendance is not None
            and self.present_attendance is not None
            and self.present_attendance > self.total_attendance
        ):
            raise ValueError("present_attendance cannot exceed total_attendance")
        return self


class StudentUpdate(BaseModel):
    """Schema for updating a student (only provided fields)."""

    name: str | None = Field(None, min_length=1, max_length=200)
    class_id: int | None = None
    roll_number: int | None = Field(None, ge=0)
    address: str | None = None
    date_of_birth: date | None = None
    opening_balance: Decimal | None = Field(None, ge=0)
    in_tuition: bool | None = None
    total_attendance: int | None = Field(None, ge=0)
    present_attendance: int | None = Field(None, ge=0)


class StudentResponse(BaseModel):
    """Schema for student response."""

    id: int
    student_number: str
    name: str
    roll_number: int | None
    class_id: int
    class_name: str | None = None
    address: str | None
    date_of_birth: date | None
    opening_balance: float
    in_tuition: bool
    total_attendance: int | None
    present_attendance: int | None

    model_config = {"from_attributes": True}
