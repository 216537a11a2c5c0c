"""API endpoints for Payments module."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.database.session import get_db
from school_office.core.pdf import build_receipt_context, pdf_service
from school_office.core.school_settings.service import get_school_settings
from school_office.modules.payments.schemas import PaymentCreate, PaymentResponse
from school_office.modules.payments.service import PaymentService
from school_office.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_payment(
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    """Record a payment on an invoice; later invoices are updated."""
    service = PaymentService(db)
    payment = await service.add_payment(data)
    return ApiResponse(
        success=True,
        message=f"Payment {payment.receipt_number} recorded",
        data=PaymentResponse.model_validate(payment),
    )


@router.get(
    "/{payment_id}",
    response_model=ApiResponse[PaymentResponse],
)
async def get_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get payment by ID."""
    service = PaymentService(db)
    payment = await service.get_payment_by_id(payment_id)
    return ApiResponse(success=True, data=PaymentResponse.model_validate(payment))


@router.get("/{payment_id}/receipt/pdf")
async def download_receipt_pdf(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Download payment receipt as PDF."""
    service = PaymentService(db)
    payment = await service.get_payment_by_id(payment_id)
    school_settings = await get_school_settings(db)
    context = build_receipt_context(payment, school_settings)
    pdf_bytes = pdf_service.generate_receipt_pdf(context)
    filename = f"receipt_{payment.receipt_number}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
