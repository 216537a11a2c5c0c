"""API endpoints for Invoices module."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.database.session import get_db
from school_office.core.pdf import build_bill_context, pdf_service
from school_office.core.school_settings.service import get_school_settings
from school_office.modules.invoices.models import Invoice
from school_office.modules.invoices.schemas import (
    InvoiceGenerateRequest,
    InvoiceLineResponse,
    InvoiceResponse,
    PaymentSummary,
)
from school_office.modules.invoices.service import InvoiceService
from school_office.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def invoice_to_response(invoice: Invoice) -> InvoiceResponse:
    """Convert Invoice to response (lines, payments, student and class loaded)."""
    return InvoiceResponse(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        student_id=invoice.student_id,
        student_name=invoice.student.name if invoice.student else None,
        class_id=invoice.class_id,
        class_name=invoice.school_class.display_name if invoice.school_class else None,
        month=invoice.month,
        year=invoice.year,
        previous_dues=float(invoice.previous_dues),
        carried_amount=float(invoice.carried_amount),
        current_charges=float(invoice.current_charges),
        total_billed=float(invoice.total_billed),
        total_paid=float(invoice.total_paid),
        balance=float(invoice.balance),
        status=invoice.status,
        created_at=invoice.created_at,
        lines=[InvoiceLineResponse.model_validate(line) for line in invoice.lines],
        payments=[PaymentSummary.model_validate(p) for p in invoice.payments],
    )


@router.post(
    "",
    response_model=ApiResponse[InvoiceResponse],
)
async def generate_invoice(
    data: InvoiceGenerateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Generate a student's invoice for a month, or rebuild it if it exists.

    The previous invoice's balance is carried in as the first line, and
    any later invoices are updated.
    """
    service = InvoiceService(db)
    invoice = await service.generate_or_update_invoice(data)
    return ApiResponse(
        success=True,
        message=f"Invoice {invoice.invoice_number} saved",
        data=invoice_to_response(invoice),
    )


@router.get(
    "/{invoice_id}",
    response_model=ApiResponse[InvoiceResponse],
)
async def get_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get invoice by ID with lines and payments."""
    service = InvoiceService(db)
    invoice = await service.get_invoice_by_id(invoice_id)
    return ApiResponse(success=True, data=invoice_to_response(invoice))


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Download the bill for an invoice as PDF."""
    service = InvoiceService(db)
    invoice = await service.get_invoice_by_id(invoice_id)
    school_settings = await get_school_settings(db)
    context = build_bill_context(invoice, school_settings)
    pdf_bytes = pdf_service.generate_bill_pdf(context)
    filename = f"bill_{invoice.invoice_number}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
