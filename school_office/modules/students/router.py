"""API endpoints for Students module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.database.session import get_db
from school_office.modules.invoices.schemas import (
    ChainRepairRequest,
    ChainRepairResult,
    InvoiceSummary,
)
from school_office.modules.invoices.service import InvoiceService
from school_office.modules.payments.schemas import PaymentResponse
from school_office.modules.payments.service import PaymentService
from school_office.modules.students.models import Student
from school_office.modules.students.schemas import StudentCreate, StudentResponse, StudentUpdate
from school_office.modules.students.service import StudentService
from school_office.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/students", tags=["Students"])


def _student_to_response(student: Student) -> StudentResponse:
    """Helper to convert Student to response."""
    return StudentResponse(
        id=student.id,
        student_number=student.student_number,
        name=student.name,
        roll_number=student.roll_number,
        class_id=student.class_id,
        class_name=student.school_class.display_name if student.school_class else None,
        address=student.address,
        date_of_birth=student.date_of_birth,
        opening_balance=float(student.opening_balance),
        in_tuition=student.in_tuition,
        total_attendance=student.total_attendance,
        present_attendance=student.present_attendance,
    )


@router.post(
    "",
    response_model=ApiResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    data: StudentCreate,
    db: AsyncSession = Depends(get_db),
):
    """Enroll a new student."""
    service = StudentService(db)
    student = await service.create_student(data)
    return ApiResponse(
        success=True,
        message="Student created successfully",
        data=_student_to_response(student),
    )


@router.get(
    "",
    response_model=ApiResponse[list[StudentResponse]],
)
async def list_students(
    class_id: int | None = Query(None, description="Filter by class"),
    search: str | None = Query(None, description="Search by name or student number"),
    db: AsyncSession = Depends(get_db),
):
    """List students with optional filters."""
    service = StudentService(db)
    students = await service.list_students(class_id=class_id, search=search)
    return ApiResponse(
        success=True,
        data=[_student_to_response(s) for s in students],
    )


@router.get(
    "/{student_id}",
    response_model=ApiResponse[StudentResponse],
)
async def get_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get student by ID."""
    service = StudentService(db)
    student = await service.get_student_by_id(student_id)
    return ApiResponse(success=True, data=_student_to_response(student))


@router.patch(
    "/{student_id}",
    response_model=ApiResponse[StudentResponse],
)
async def update_student(
    student_id: int,
    data: StudentUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a student. Existing invoices are not rebuilt."""
    service = StudentService(db)
    student = await service.update_student(student_id, data)
    return ApiResponse(
        success=True,
        message="Student updated successfully",
        data=_student_to_response(student),
    )


# --- Ledger Endpoints ---


@router.get(
    "/{student_id}/invoices",
    response_model=ApiResponse[list[InvoiceSummary]],
)
async def list_student_invoices(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Invoices of a student, newest first."""
    await StudentService(db).get_student_by_id(student_id)
    invoices = await InvoiceService(db).list_invoices_for_student(student_id)
    return ApiResponse(
        success=True,
        data=[InvoiceSummary.model_validate(inv) for inv in invoices],
    )


@router.get(
    "/{student_id}/payments",
    response_model=ApiResponse[list[PaymentResponse]],
)
async def list_student_payments(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Payments of a student, newest first."""
    payments = await PaymentService(db).list_payments_for_student(student_id)
    return ApiResponse(
        success=True,
        data=[PaymentResponse.model_validate(p) for p in payments],
    )


@router.post(
    "/{student_id}/ledger/repair",
    response_model=ApiResponse[ChainRepairResult],
)
async def repair_student_ledger(
    student_id: int,
    data: ChainRepairRequest,
    db: AsyncSession = Depends(get_db),
):
    """Recompute carried balances of a student's invoices (e.g. after a failed update)."""
    service = InvoiceService(db)
    result = await service.repair_student_chain(student_id, data.from_invoice_id)
    return ApiResponse(
        success=True,
        message=f"{result.invoices_rewritten} invoice(s) updated",
        data=result,
    )
