"""Schemas for Invoices module."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from school_office.modules.classes.models import FeeKind
from school_office.modules.invoices.models import BikramMonth


# --- Invoice Line Schemas ---


class InvoiceLineResponse(BaseModel):
    """Schema for invoice line response."""

    id: int
    position: int
    line_type: str
    fee_kind: str | None
    label: str
    amount: float

    model_config = {"from_attributes": True}


class PaymentSummary(BaseModel):
    """Payment as listed under its invoice."""

    id: int
    receipt_number: str
    amount: float
    paid_at: datetime

    model_config = {"from_attributes": True}


# --- Invoice Schemas ---


class InvoiceGenerateRequest(BaseModel):
    """Generate (or regenerate) one student's invoice for a month."""

    student_id: int
    class_id: int | None = None  # defaults to the student's current class
    month: BikramMonth
    year: int = Field(..., ge=1970, le=2200)
    selected_fees: list[FeeKind] = Field(default_factory=list)
    extra_fee: Decimal = Field(default=Decimal("0.00"), ge=0)
    extra_fee_label: str = Field("Medical", min_length=1, max_length=100)
    # None: use the configured policy
    allow_rebill_after_payment: bool | None = None


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""

    id: int
    invoice_number: str
    student_id: int
    student_name: str | None = None
    class_id: int
    class_name: str | None = None
    month: str
    year: int
    previous_dues: float
    carried_amount: float
    current_charges: float
    total_billed: float
    total_paid: float
    balance: float
    status: str
    created_at: datetime
    lines: list[InvoiceLineResponse] = Field(default_factory=list)
    payments: list[PaymentSummary] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class InvoiceSummary(BaseModel):
    """Brief invoice summary for lists."""

    id: int
    invoice_number: str
    student_id: int
    month: str
    year: int
    total_billed: float
    total_paid: float
    balance: float
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Bulk Generation ---


class BulkInvoiceRequest(BaseModel):
    """Generate invoices for every student of a class."""

    month: BikramMonth
    year: int = Field(..., ge=1970, le=2200)
    selected_fees: list[FeeKind] = Field(default_factory=list)


class BulkInvoiceFailure(BaseModel):
    student_id: int
    student_name: str
    message: str


class BulkInvoiceResult(BaseModel):
    """Result of bulk generation."""

    created: int
    updated: int
    failed: list[BulkInvoiceFailure] = Field(default_factory=list)
    total_students: int


class InvoicesExistResponse(BaseModel):
    exists: bool


# --- Chain repair ---


class ChainRepairRequest(BaseModel):
    # None: repair the whole chain starting at the opening balance
    from_invoice_id: int | None = None


class ChainRepairResult(BaseModel):
    student_id: int
    invoices_checked: int
    invoices_rewritten: int
