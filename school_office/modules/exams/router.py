"""API endpoints for Exams module (exams, subjects, results, marksheets)."""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.database.session import get_db
from school_office.core.pdf import build_marksheet_context, pdf_service
from school_office.core.school_settings.service import get_school_settings
from school_office.modules.exams.grading import round2
from school_office.modules.exams.schemas import (
    ExamCreate,
    ExamResponse,
    ExamUpdate,
    MarksheetLine,
    MarksheetResponse,
    ResultResponse,
    ResultUpsert,
    SubjectCreate,
    SubjectResponse,
    SubjectUpdate,
)
from school_office.modules.exams.service import ExamService, StudentMarksheet
from school_office.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/exams", tags=["Exams"])


def _marksheet_to_response(marksheet: StudentMarksheet) -> MarksheetResponse:
    totals = marksheet.totals
    return MarksheetResponse(
        exam_id=marksheet.exam.id,
        exam_name=marksheet.exam.name,
        exam_date=marksheet.exam.exam_date,
        student_id=marksheet.student.id,
        student_name=marksheet.student.name,
        roll_number=marksheet.student.roll_number,
        class_name=marksheet.school_class.display_name if marksheet.school_class else "",
        subjects=[
            MarksheetLine(
                subject_id=mark.subject_id,
                code=mark.code,
                name=mark.name,
                full_marks_theory=float(mark.full_marks_theory),
                full_marks_practical=float(mark.full_marks_practical),
                theory_marks=float(mark.theory_marks),
                practical_marks=float(mark.practical_marks),
                percentage=float(round2(mark.percentage)),
                grade=mark.grade.letter,
                grade_point=float(mark.grade.grade_point),
                remarks=mark.grade.remarks,
                is_extra=mark.is_extra,
            )
            for mark in marksheet.marks
        ],
        total_full_marks=float(totals.full_marks),
        total_obtained_marks=float(totals.obtained_marks),
        percentage=float(round2(totals.percentage)),
        gpa=float(totals.gpa),
        grade=totals.grade.letter,
        remarks=totals.grade.remarks,
    )


# --- Subject Endpoints ---


@router.post(
    "/subjects",
    response_model=ApiResponse[SubjectResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_subject(
    data: SubjectCreate,
    db: AsyncSession = Depends(get_db),
):
    """Add a subject to a class."""
    subject = await ExamService(db).create_subject(data)
    return ApiResponse(
        success=True,
        message="Subject created successfully",
        data=SubjectResponse.model_validate(subject),
    )


@router.get(
    "/subjects",
    response_model=ApiResponse[list[SubjectResponse]],
)
async def list_subjects(
    class_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Subjects of a class."""
    subjects = await ExamService(db).list_subjects(class_id)
    return ApiResponse(
        success=True,
        data=[SubjectResponse.model_validate(s) for s in subjects],
    )


@router.patch(
    "/subjects/{subject_id}",
    response_model=ApiResponse[SubjectResponse],
)
async def update_subject(
    subject_id: int,
    data: SubjectUpdate,
    db: AsyncSession = Depends(get_db),
):
    subject = await ExamService(db).update_subject(subject_id, data)
    return ApiResponse(
        success=True,
        message="Subject updated successfully",
        data=SubjectResponse.model_validate(subject),
    )


@router.delete(
    "/subjects/{subject_id}",
    response_model=ApiResponse[None],
)
async def delete_subject(
    subject_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a subject and all results recorded for it."""
    await ExamService(db).delete_subject(subject_id)
    return ApiResponse(success=True, message="Subject deleted", data=None)


# --- Exam Endpoints ---


@router.post(
    "",
    response_model=ApiResponse[ExamResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_exam(
    data: ExamCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create an exam (date required)."""
    exam = await ExamService(db).create_exam(data)
    return ApiResponse(
        success=True,
        message="Exam created successfully",
        data=ExamResponse.model_validate(exam),
    )


@router.get(
    "",
    response_model=ApiResponse[list[ExamResponse]],
)
async def list_exams(db: AsyncSession = Depends(get_db)):
    """Exams, newest first."""
    exams = await ExamService(db).list_exams()
    return ApiResponse(success=True, data=[ExamResponse.model_validate(e) for e in exams])


@router.get(
    "/{exam_id}",
    response_model=ApiResponse[ExamResponse],
)
async def get_exam(
    exam_id: int,
    db: AsyncSession = Depends(get_db),
):
    exam = await ExamService(db).get_exam_by_id(exam_id)
    return ApiResponse(success=True, data=ExamResponse.model_validate(exam))


@router.patch(
    "/{exam_id}",
    response_model=ApiResponse[ExamResponse],
)
async def update_exam(
    exam_id: int,
    data: ExamUpdate,
    db: AsyncSession = Depends(get_db),
):
    exam = await ExamService(db).update_exam(exam_id, data)
    return ApiResponse(
        success=True,
        message="Exam updated successfully",
        data=ExamResponse.model_validate(exam),
    )


# --- Result Endpoints ---


@router.put(
    "/{exam_id}/results",
    response_model=ApiResponse[ResultResponse],
)
async def upsert_result(
    exam_id: int,
    data: ResultUpsert,
    db: AsyncSession = Depends(get_db),
):
    """Record (or replace) a student's marks in a subject."""
    result = await ExamService(db).add_or_update_result(exam_id, data)
    return ApiResponse(
        success=True,
        message="Result saved",
        data=ResultResponse.model_validate(result),
    )


@router.get(
    "/{exam_id}/results",
    response_model=ApiResponse[list[ResultResponse]],
)
async def list_results(
    exam_id: int,
    class_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    results = await ExamService(db).list_results(exam_id, class_id=class_id)
    return ApiResponse(success=True, data=[ResultResponse.model_validate(r) for r in results])


# --- Marksheet Endpoints ---


@router.get("/{exam_id}/marksheets/pdf")
async def download_marksheets_pdf(
    exam_id: int,
    class_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Download marksheets of a class for an exam, one page per student."""
    service = ExamService(db)
    exam = await service.get_exam_by_id(exam_id)
    marksheets = await service.build_class_marksheets(exam_id, class_id)
    school_settings = await get_school_settings(db)
    class_name = marksheets[0].school_class.display_name if marksheets else ""
    context = build_marksheet_context(marksheets, school_settings, exam, class_name)
    pdf_bytes = pdf_service.generate_marksheet_pdf(context)
    filename = f"marksheets_{exam_id}_{class_id}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/{exam_id}/marksheets/{student_id}",
    response_model=ApiResponse[MarksheetResponse],
)
async def get_marksheet(
    exam_id: int,
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Graded marksheet of one student."""
    marksheet = await ExamService(db).build_marksheet(exam_id, student_id)
    return ApiResponse(success=True, data=_marksheet_to_response(marksheet))
