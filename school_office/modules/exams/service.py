"""Service for Exams module (exams, subjects, results and marksheets)."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_office.core.audit import AuditAction, AuditService
from school_office.core.exceptions import DuplicateError, NotFoundError, ValidationError
from school_office.modules.classes.models import SchoolClass
from school_office.modules.exams.grading import MarksheetTotals, SubjectMark, marksheet_totals
from school_office.modules.exams.models import Exam, Result, Subject
from school_office.modules.exams.schemas import (
    ExamCreate,
    ExamUpdate,
    ResultUpsert,
    SubjectCreate,
    SubjectUpdate,
)
from school_office.modules.students.models import Student

logger = logging.getLogger(__name__)


@dataclass
class StudentMarksheet:
    exam: Exam
    student: Student
    school_class: SchoolClass
    marks: list[SubjectMark]
    totals: MarksheetTotals


class ExamService:
    """Service for exams, class subjects and marks."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Exams ---

    async def _ensure_unique_exam(
        self, name: str, exam_date: date, exclude_id: int | None = None
    ) -> None:
        query = select(Exam.id).where(Exam.name == name, Exam.exam_date == exam_date)
        if exclude_id is not None:
            query = query.where(Exam.id != exclude_id)
        if (await self.db.execute(query)).scalar_one_or_none() is not None:
            raise DuplicateError("Exam", "name", f"{name} ({exam_date})")

    async def create_exam(self, data: ExamCreate) -> Exam:
        if data.exam_date is None:
            raise ValidationError("Exam date is required", field="exam_date")
        await self._ensure_unique_exam(data.name, data.exam_date)
        exam = Exam(name=data.name, exam_date=data.exam_date)
        self.db.add(exam)
        await self.db.flush()
        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Exam",
            entity_id=exam.id,
            entity_identifier=exam.name,
            new_values={"name": exam.name, "exam_date": exam.exam_date.isoformat()},
        )
        await self.db.commit()
        return await self.get_exam_by_id(exam.id)

    async def get_exam_by_id(self, exam_id: int) -> Exam:
        result = await self.db.execute(select(Exam).where(Exam.id == exam_id))
        exam = result.scalar_one_or_none()
        if not exam:
            raise NotFoundError("Exam", exam_id)
        return exam

    async def list_exams(self) -> list[Exam]:
        """Exams, newest first."""
        result = await self.db.execute(
            select(Exam).order_by(Exam.exam_date.desc(), Exam.id.desc())
        )
        return list(result.scalars().all())

    async def update_exam(self, exam_id: int, data: ExamUpdate) -> Exam:
        exam = await self.get_exam_by_id(exam_id)
        update = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if update:
            await self._ensure_unique_exam(
                update.get("name", exam.name),
                update.get("exam_date", exam.exam_date),
                exclude_id=exam_id,
            )
            for key, value in update.items():
                setattr(exam, key, value)
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Exam",
                entity_id=exam_id,
                entity_identifier=exam.name,
                new_values={k: str(v) for k, v in update.items()},
            )
        await self.db.commit()
        return await self.get_exam_by_id(exam_id)

    # --- Subjects ---

    async def _get_class(self, class_id: int) -> SchoolClass:
        result = await self.db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
        school_class = result.scalar_one_or_none()
        if not school_class:
            raise NotFoundError("Class", class_id)
        return school_class

    async def _ensure_unique_code(self, class_id: int, code: str, exclude_id: int | None = None) -> None:
        """Subject codes are unique within a class; empty codes are not checked."""
        if not code:
            return
        query = select(Subject.id).where(Subject.class_id == class_id, Subject.code == code)
        if exclude_id is not None:
            query = query.where(Subject.id != exclude_id)
        if (await self.db.execute(query)).scalar_one_or_none() is not None:
            raise DuplicateError("Subject", "code", code)

    async def create_subject(self, data: SubjectCreate) -> Subject:
        await self._get_class(data.class_id)
        await self._ensure_unique_code(data.class_id, data.code)
        subject = Subject(
            class_id=data.class_id,
            name=data.name,
            code=data.code,
            full_marks_theory=data.full_marks_theory,
            full_marks_practical=data.full_marks_practical,
            is_extra=data.is_extra,
        )
        self.db.add(subject)
        await self.db.flush()
        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Subject",
            entity_id=subject.id,
            entity_identifier=subject.code or subject.name,
            new_values={"class_id": data.class_id, "name": data.name},
        )
        await self.db.commit()
        return await self.get_subject_by_id(subject.id)

    async def get_subject_by_id(self, subject_id: int) -> Subject:
        result = await self.db.execute(select(Subject).where(Subject.id == subject_id))
        subject = result.scalar_one_or_none()
        if not subject:
            raise NotFoundError("Subject", subject_id)
        return subject

    async def list_subjects(self, class_id: int) -> list[Subject]:
        """Subjects of a class: core subjects first."""
        result = await self.db.execute(
            select(Subject)
            .where(Subject.class_id == class_id)
            .order_by(Subject.is_extra, Subject.id)
        )
        return list(result.scalars().all())

    async def update_subject(self, subject_id: int, data: SubjectUpdate) -> Subject:
        subject = await self.get_subject_by_id(subject_id)
        update = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if "code" in update:
            await self._ensure_unique_code(subject.class_id, update["code"], exclude_id=subject_id)
        old_values = {key: str(getattr(subject, key)) for key in update}
        for key, value in update.items():
            setattr(subject, key, value)
        if update:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Subject",
                entity_id=subject_id,
                entity_identifier=subject.code or subject.name,
                old_values=old_values,
                new_values={k: str(v) for k, v in update.items()},
            )
        await self.db.commit()
        return await self.get_subject_by_id(subject_id)

    async def delete_subject(self, subject_id: int) -> None:
        """Delete a subject together with every result recorded for it."""
        subject = await self.get_subject_by_id(subject_id)
        removed = await self.db.execute(delete(Result).where(Result.subject_id == subject_id))
        await self.db.delete(subject)
        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Subject",
            entity_id=subject_id,
            entity_identifier=subject.code or subject.name,
            old_values={"name": subject.name, "results_deleted": removed.rowcount},
        )
        await self.db.commit()
        logger.info("Deleted subject %s and %s result(s)", subject_id, removed.rowcount)

    # --- Results ---

    async def add_or_update_result(self, exam_id: int, data: ResultUpsert) -> Result:
        """Record marks for (exam, student, subject), replacing earlier marks."""
        await self.get_exam_by_id(exam_id)
        subject = await self.get_subject_by_id(data.subject_id)
        student_result = await self.db.execute(select(Student).where(Student.id == data.student_id))
        student = student_result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", data.student_id)
        if student.class_id != subject.class_id:
            raise ValidationError(
                f"Subject {subject.name} is not taught in the student's class",
                field="subject_id",
            )
        if data.theory_marks > subject.full_marks_theory:
            raise ValidationError(
                f"Theory marks cannot exceed {subject.full_marks_theory}", field="theory_marks"
            )
        if data.practical_marks > subject.full_marks_practical:
            raise ValidationError(
                f"Practical marks cannot exceed {subject.full_marks_practical}",
                field="practical_marks",
            )

        existing = await self.db.execute(
            select(Result).where(
                Result.exam_id == exam_id,
                Result.student_id == data.student_id,
                Result.subject_id == data.subject_id,
            )
        )
        result = existing.scalar_one_or_none()
        old_values = None
        if result is None:
            result = Result(
                exam_id=exam_id,
                student_id=data.student_id,
                subject_id=data.subject_id,
            )
            self.db.add(result)
        else:
            old_values = {
                "theory_marks": str(result.theory_marks),
                "practical_marks": str(result.practical_marks),
            }
        result.theory_marks = data.theory_marks
        result.practical_marks = data.practical_marks
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.RECORD_RESULT,
            entity_type="Result",
            entity_id=result.id,
            old_values=old_values,
            new_values={
                "exam_id": exam_id,
                "student_id": data.student_id,
                "subject_id": data.subject_id,
                "theory_marks": str(data.theory_marks),
                "practical_marks": str(data.practical_marks),
            },
        )
        await self.db.commit()
        return result

    async def list_results(self, exam_id: int, class_id: int | None = None) -> list[Result]:
        await self.get_exam_by_id(exam_id)
        query = select(Result).where(Result.exam_id == exam_id).order_by(Result.id)
        if class_id is not None:
            query = query.join(Subject, Subject.id == Result.subject_id).where(
                Subject.class_id == class_id
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # --- Marksheets ---

    @staticmethod
    def _to_mark(result: Result) -> SubjectMark:
        subject = result.subject
        return SubjectMark(
            subject_id=subject.id,
            code=subject.code or "",
            name=subject.name,
            full_marks_theory=Decimal(subject.full_marks_theory or 0),
            full_marks_practical=Decimal(subject.full_marks_practical or 0),
            theory_marks=Decimal(result.theory_marks or 0),
            practical_marks=Decimal(result.practical_marks or 0),
            is_extra=subject.is_extra,
        )

    async def build_marksheet(self, exam_id: int, student_id: int) -> StudentMarksheet:
        """Graded marksheet of one student for an exam."""
        exam = await self.get_exam_by_id(exam_id)
        student_row = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .options(selectinload(Student.school_class))
        )
        student = student_row.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)

        rows = await self.db.execute(
            select(Result)
            .join(Subject, Subject.id == Result.subject_id)
            .where(Result.exam_id == exam_id, Result.student_id == student_id)
            .options(selectinload(Result.subject))
            .order_by(Subject.is_extra, Subject.id)
        )
        marks = [self._to_mark(result) for result in rows.scalars().all()]
        return StudentMarksheet(
            exam=exam,
            student=student,
            school_class=student.school_class,
            marks=marks,
            totals=marksheet_totals(marks),
        )

    async def build_class_marksheets(self, exam_id: int, class_id: int) -> list[StudentMarksheet]:
        """Marksheets of every student in a class, by roll number."""
        await self.get_exam_by_id(exam_id)
        await self._get_class(class_id)
        students = await self.db.execute(
            select(Student.id)
            .where(Student.class_id == class_id)
            .order_by(Student.roll_number, Student.name, Student.id)
        )
        return [
            await self.build_marksheet(exam_id, student_id)
            for student_id in students.scalars().all()
        ]
