"""API endpoints for Classes module (fee catalog, class-level billing)."""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.database.session import get_db
from school_office.core.pdf import build_bulk_bills_context, pdf_service
from school_office.core.school_settings.service import get_school_settings
from school_office.modules.classes.models import SchoolClass
from school_office.modules.classes.schemas import (
    ClassCreate,
    ClassFeesUpdate,
    ClassResponse,
    ClassUpdate,
)
from school_office.modules.classes.service import ClassService
from school_office.modules.invoices.models import BikramMonth
from school_office.modules.invoices.schemas import (
    BulkInvoiceRequest,
    BulkInvoiceResult,
    InvoicesExistResponse,
)
from school_office.modules.invoices.service import InvoiceService
from school_office.modules.reports.schemas import ClassFeeSummary, ClassMonthSummary
from school_office.modules.reports.service import ReportService
from school_office.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/classes", tags=["Classes"])


def _class_to_response(school_class: SchoolClass) -> ClassResponse:
    return ClassResponse(
        id=school_class.id,
        name=school_class.name,
        section=school_class.section,
        display_name=school_class.display_name,
        fees={kind.value: float(amount) for kind, amount in school_class.fee_schedule.items()},
    )


# --- Class Endpoints ---


@router.post(
    "",
    response_model=ApiResponse[ClassResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_class(
    data: ClassCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a class; every fee starts at 0."""
    service = ClassService(db)
    school_class = await service.create_class(data)
    return ApiResponse(
        success=True,
        message="Class created successfully",
        data=_class_to_response(school_class),
    )


@router.get(
    "",
    response_model=ApiResponse[list[ClassResponse]],
)
async def list_classes(db: AsyncSession = Depends(get_db)):
    """List classes with their fee schedules."""
    service = ClassService(db)
    classes = await service.list_classes()
    return ApiResponse(
        success=True,
        data=[_class_to_response(c) for c in classes],
    )


@router.get(
    "/fee-summaries",
    response_model=ApiResponse[list[ClassFeeSummary]],
)
async def class_fee_summaries(db: AsyncSession = Depends(get_db)):
    """Billed, collected and due totals per class."""
    service = ReportService(db)
    return ApiResponse(success=True, data=await service.class_fee_summaries())


@router.get(
    "/{class_id}",
    response_model=ApiResponse[ClassResponse],
)
async def get_class(
    class_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get class by ID."""
    service = ClassService(db)
    school_class = await service.get_class_by_id(class_id)
    return ApiResponse(success=True, data=_class_to_response(school_class))


@router.patch(
    "/{class_id}",
    response_model=ApiResponse[ClassResponse],
)
async def update_class(
    class_id: int,
    data: ClassUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Rename a class."""
    service = ClassService(db)
    school_class = await service.update_class(class_id, data)
    return ApiResponse(
        success=True,
        message="Class updated successfully",
        data=_class_to_response(school_class),
    )


@router.put(
    "/{class_id}/fees",
    response_model=ApiResponse[ClassResponse],
)
async def update_class_fees(
    class_id: int,
    data: ClassFeesUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Overwrite fee amounts; existing invoices are not touched."""
    service = ClassService(db)
    school_class = await service.update_class_fees(class_id, data)
    return ApiResponse(
        success=True,
        message="Fees updated successfully",
        data=_class_to_response(school_class),
    )


# --- Class Billing Endpoints ---


@router.get(
    "/{class_id}/fee-summary",
    response_model=ApiResponse[ClassMonthSummary],
)
async def class_month_summary(
    class_id: int,
    month: BikramMonth = Query(...),
    year: int = Query(..., ge=1970, le=2200),
    db: AsyncSession = Depends(get_db),
):
    """Per-student fee status of a class for a month."""
    service = ReportService(db)
    summary = await service.class_month_summary(class_id, month.value, year)
    return ApiResponse(success=True, data=summary)


@router.get(
    "/{class_id}/invoices-exist",
    response_model=ApiResponse[InvoicesExistResponse],
)
async def invoices_exist(
    class_id: int,
    month: BikramMonth = Query(...),
    year: int = Query(..., ge=1970, le=2200),
    db: AsyncSession = Depends(get_db),
):
    """Whether the class already has invoices for a month."""
    service = InvoiceService(db)
    exists = await service.invoices_exist_for_month(class_id, month.value, year)
    return ApiResponse(success=True, data=InvoicesExistResponse(exists=exists))


@router.post(
    "/{class_id}/invoices/bulk",
    response_model=ApiResponse[BulkInvoiceResult],
)
async def bulk_generate_invoices(
    class_id: int,
    data: BulkInvoiceRequest,
    db: AsyncSession = Depends(get_db),
):
    """Generate or update the month's invoice for every student of the class."""
    service = InvoiceService(db)
    result = await service.bulk_generate(class_id, data)
    return ApiResponse(
        success=True,
        message=(
            f"Invoices: {result.created} created, {result.updated} updated, "
            f"{len(result.failed)} failed"
        ),
        data=result,
    )


@router.get("/{class_id}/bills/pdf")
async def download_class_bills_pdf(
    class_id: int,
    month: BikramMonth = Query(...),
    year: int = Query(..., ge=1970, le=2200),
    db: AsyncSession = Depends(get_db),
):
    """Download the month's bills of a class as one PDF."""
    school_class = await ClassService(db).get_class_by_id(class_id)
    invoices = await InvoiceService(db).list_invoices_for_class_month(class_id, month.value, year)
    school_settings = await get_school_settings(db)
    context = build_bulk_bills_context(
        invoices, school_settings, school_class.display_name, f"{month.value} {year}"
    )
    pdf_bytes = pdf_service.generate_bulk_bills_pdf(context)
    filename = f"bills_{school_class.display_name.replace(' ', '_')}_{month.value}_{year}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
