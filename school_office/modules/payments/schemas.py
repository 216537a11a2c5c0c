"""Pydantic schemas for Payments module."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from school_office.shared.schemas.base import BaseSchema


class PaymentCreate(BaseSchema):
    """Schema for recording a payment against one invoice."""

    student_id: int
    invoice_id: int
    amount: Decimal = Field(gt=0, description="Payment amount (must be positive)")


class PaymentResponse(BaseSchema):
    """Schema for payment response."""

    id: int
    receipt_number: str
    invoice_id: int
    student_id: int
    amount: float
    paid_at: datetime
