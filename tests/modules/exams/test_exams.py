"""Tests for exams, subjects, results and marksheets."""

from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.exceptions import DuplicateError, NotFoundError, ValidationError
from school_office.modules.classes.schemas import ClassCreate
from school_office.modules.classes.service import ClassService
from school_office.modules.exams.models import Result
from school_office.modules.exams.schemas import (
    ExamCreate,
    ExamUpdate,
    ResultUpsert,
    SubjectCreate,
    SubjectUpdate,
)
from school_office.modules.exams.service import ExamService
from school_office.modules.students.schemas import StudentCreate
from school_office.modules.students.service import StudentService


async def _setup_test_data(db_session: AsyncSession) -> dict:
    """Class Nine with English (75+25), Maths (100) and extra Computer (50)."""
    school_class = await ClassService(db_session).create_class(ClassCreate(name="Nine"))
    student = await StudentService(db_session).create_student(
        StudentCreate(
            name="Rita Rai",
            class_id=school_class.id,
            roll_number=5,
            total_attendance=220,
            present_attendance=210,
        )
    )
    service = ExamService(db_session)
    exam = await service.create_exam(ExamCreate(name="First Terminal", exam_date=date(2024, 7, 15)))
    english = await service.create_subject(
        SubjectCreate(
            class_id=school_class.id,
            name="English",
            code="ENG",
            full_marks_theory=Decimal("75"),
            full_marks_practical=Decimal("25"),
        )
    )
    maths = await service.create_subject(
        SubjectCreate(class_id=school_class.id, name="Mathematics", code="MTH")
    )
    computer = await service.create_subject(
        SubjectCreate(
            class_id=school_class.id,
            name="Computer",
            code="CMP",
            full_marks_theory=Decimal("50"),
            is_extra=True,
        )
    )
    return {
        "class_id": school_class.id,
        "student_id": student.id,
        "exam_id": exam.id,
        "english": english.id,
        "maths": maths.id,
        "computer": computer.id,
    }


async def _record(db_session: AsyncSession, data: dict, subject: str, theory: str, practical: str = "0"):
    return await ExamService(db_session).add_or_update_result(
        data["exam_id"],
        ResultUpsert(
            student_id=data["student_id"],
            subject_id=data[subject],
            theory_marks=Decimal(theory),
            practical_marks=Decimal(practical),
        ),
    )


class TestExamService:
    async def test_exam_date_required(self, db_session: AsyncSession):
        with pytest.raises(ValidationError):
            await ExamService(db_session).create_exam(ExamCreate(name="Final"))

    async def test_list_exams_newest_first(self, db_session: AsyncSession):
        service = ExamService(db_session)
        await service.create_exam(ExamCreate(name="First", exam_date=date(2024, 7, 1)))
        await service.create_exam(ExamCreate(name="Second", exam_date=date(2024, 11, 1)))
        assert [e.name for e in await service.list_exams()] == ["Second", "First"]

    async def test_update_exam(self, db_session: AsyncSession):
        service = ExamService(db_session)
        exam = await service.create_exam(ExamCreate(name="First", exam_date=date(2024, 7, 1)))
        updated = await service.update_exam(exam.id, ExamUpdate(name="First Terminal"))
        assert updated.name == "First Terminal"
        assert updated.exam_date == date(2024, 7, 1)

    async def test_subjects_core_first(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        subjects = await ExamService(db_session).list_subjects(data["class_id"])
        assert [s.code for s in subjects] == ["ENG", "MTH", "CMP"]
        assert subjects[0].full_marks == Decimal("100")

    async def test_update_subject(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        subject = await ExamService(db_session).update_subject(
            data["maths"], SubjectUpdate(full_marks_theory=Decimal("80"), full_marks_practical=Decimal("20"))
        )
        assert subject.full_marks == Decimal("100")
        assert subject.full_marks_practical == Decimal("20")

    async def test_duplicate_exam_rejected(self, db_session: AsyncSession):
        service = ExamService(db_session)
        await service.create_exam(ExamCreate(name="Final", exam_date=date(2025, 3, 20)))
        with pytest.raises(DuplicateError):
            await service.create_exam(ExamCreate(name="Final", exam_date=date(2025, 3, 20)))
        other = await service.create_exam(ExamCreate(name="Final", exam_date=date(2026, 3, 20)))
        with pytest.raises(DuplicateError):
            await service.update_exam(other.id, ExamUpdate(exam_date=date(2025, 3, 20)))

    async def test_duplicate_subject_code_rejected(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        service = ExamService(db_session)
        with pytest.raises(DuplicateError):
            await service.create_subject(SubjectCreate(class_id=data["class_id"], name="Maths II", code="MTH"))
        with pytest.raises(DuplicateError):
            await service.update_subject(data["english"], SubjectUpdate(code="MTH"))
        # Subjects without a code are not checked
        await service.create_subject(SubjectCreate(class_id=data["class_id"], name="Moral Science"))
        await service.create_subject(SubjectCreate(class_id=data["class_id"], name="Drawing"))

    async def test_subject_for_unknown_class(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await ExamService(db_session).create_subject(SubjectCreate(class_id=9999, name="Science"))


class TestResults:
    async def test_result_is_replaced(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        first = await _record(db_session, data, "maths", "55")
        second = await _record(db_session, data, "maths", "65")

        assert second.id == first.id
        assert second.theory_marks == Decimal("65")
        results = await ExamService(db_session).list_results(data["exam_id"], data["class_id"])
        assert len(results) == 1

    async def test_marks_above_full_marks_rejected(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        with pytest.raises(ValidationError):
            await _record(db_session, data, "english", "76")
        with pytest.raises(ValidationError):
            await _record(db_session, data, "maths", "50", practical="1")

    async def test_subject_of_other_class_rejected(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        other = await ClassService(db_session).create_class(ClassCreate(name="Ten"))
        science = await ExamService(db_session).create_subject(
            SubjectCreate(class_id=other.id, name="Science")
        )
        with pytest.raises(ValidationError):
            await ExamService(db_session).add_or_update_result(
                data["exam_id"],
                ResultUpsert(student_id=data["student_id"], subject_id=science.id, theory_marks=Decimal("10")),
            )

    async def test_delete_subject_removes_results(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        await _record(db_session, data, "computer", "40")
        await _record(db_session, data, "maths", "70")

        await ExamService(db_session).delete_subject(data["computer"])

        remaining = await db_session.execute(select(Result.subject_id))
        assert remaining.scalars().all() == [data["maths"]]
        with pytest.raises(NotFoundError):
            await ExamService(db_session).get_subject_by_id(data["computer"])


class TestMarksheet:
    async def test_marksheet_grades_and_totals(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        await _record(db_session, data, "english", "60", practical="22")  # 82%
        await _record(db_session, data, "maths", "59.5")  # 59.5% -> C+
        await _record(db_session, data, "computer", "48")  # extra, not in totals

        sheet = await ExamService(db_session).build_marksheet(data["exam_id"], data["student_id"])

        assert [m.code for m in sheet.marks] == ["ENG", "MTH", "CMP"]
        english, maths, computer = sheet.marks
        assert english.grade.letter == "A"
        # Not rounded up into the B band
        assert maths.grade.letter == "C+"
        assert computer.grade.letter == "A+"
        assert sheet.totals.full_marks == Decimal("200")
        assert sheet.totals.obtained_marks == Decimal("141.5")
        assert sheet.totals.gpa == Decimal("3.00")
        assert sheet.totals.grade.letter == "B+"

    async def test_only_subjects_with_results_listed(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        await _record(db_session, data, "maths", "30")

        sheet = await ExamService(db_session).build_marksheet(data["exam_id"], data["student_id"])
        assert [m.code for m in sheet.marks] == ["MTH"]
        assert sheet.totals.grade.letter == "NG"

    async def test_class_marksheets_by_roll_number(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        await StudentService(db_session).create_student(
            StudentCreate(name="Amit", class_id=data["class_id"], roll_number=1)
        )
        sheets = await ExamService(db_session).build_class_marksheets(data["exam_id"], data["class_id"])
        assert [s.student.name for s in sheets] == ["Amit", "Rita Rai"]
        assert sheets[0].marks == []


class TestExamEndpoints:
    async def test_full_flow(self, client: AsyncClient, db_session: AsyncSession):
        school_class = await ClassService(db_session).create_class(ClassCreate(name="Nine"))
        student = await StudentService(db_session).create_student(
            StudentCreate(name="Rita Rai", class_id=school_class.id, roll_number=5)
        )

        response = await client.post("/api/v1/exams", json={"name": "Final", "exam_date": "2025-03-20"})
        assert response.status_code == 201
        exam_id = response.json()["data"]["id"]

        response = await client.post(
            "/api/v1/exams/subjects",
            json={"class_id": school_class.id, "name": "Science", "code": "SCI", "full_marks_theory": "75",
                  "full_marks_practical": "25"},
        )
        assert response.status_code == 201
        subject_id = response.json()["data"]["id"]

        response = await client.put(
            f"/api/v1/exams/{exam_id}/results",
            json={"student_id": student.id, "subject_id": subject_id, "theory_marks": "70", "practical_marks": "21"},
        )
        assert response.status_code == 200

        response = await client.get(f"/api/v1/exams/{exam_id}/marksheets/{student.id}")
        assert response.status_code == 200
        sheet = response.json()["data"]
        assert sheet["percentage"] == 91.0
        assert sheet["grade"] == "A+"
        assert sheet["gpa"] == 4.0
        assert sheet["subjects"][0]["remarks"] == "OUTSTANDING"

        response = await client.get("/api/v1/exams/subjects", params={"class_id": school_class.id})
        assert [s["code"] for s in response.json()["data"]] == ["SCI"]

    async def test_missing_exam_date_422(self, client: AsyncClient):
        response = await client.post("/api/v1/exams", json={"name": "Final"})
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "exam_date"

    async def test_delete_subject(self, client: AsyncClient, db_session: AsyncSession):
        school_class = await ClassService(db_session).create_class(ClassCreate(name="Nine"))
        response = await client.post(
            "/api/v1/exams/subjects", json={"class_id": school_class.id, "name": "Art"}
        )
        subject_id = response.json()["data"]["id"]

        response = await client.delete(f"/api/v1/exams/subjects/{subject_id}")
        assert response.status_code == 200
        response = await client.patch(f"/api/v1/exams/subjects/{subject_id}", json={"name": "Arts"})
        assert response.status_code == 404
