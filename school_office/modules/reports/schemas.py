"""Schemas for fee summaries."""

from pydantic import BaseModel, Field

from school_office.modules.invoices.schemas import InvoiceSummary


class StudentMonthStatus(BaseModel):
    """One student's row in a class's monthly fee summary."""

    student_id: int
    student_name: str
    roll_number: int | None
    invoice: InvoiceSummary | None = None
    overall_balance: float
    status: str


class ClassMonthSummary(BaseModel):
    class_id: int
    class_name: str
    month: str
    year: int
    students: list[StudentMonthStatus] = Field(default_factory=list)
    # Month's own charges (carried balances excluded)
    total_billed: float
    total_collected: float
    total_dues: float


class ClassFeeSummary(BaseModel):
    """Class totals taken from each student's latest invoice."""

    class_id: int
    class_name: str
    student_count: int
    total_billed: float
    total_collected: float
    total_dues: float
