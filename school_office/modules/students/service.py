"""Service for Students module."""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_office.core.audit import AuditAction, AuditService
from school_office.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix
from school_office.core.exceptions import NotFoundError, ValidationError
from school_office.modules.classes.models import SchoolClass
from school_office.modules.students.models import Student
from school_office.modules.students.schemas import StudentCreate, StudentUpdate
from school_office.shared.utils.money import round_money


class StudentService:
    """Service for managing students."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def _validate_class(self, class_id: int) -> SchoolClass:
        result = await self.db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
        school_class = result.scalar_one_or_none()
        if not school_class:
            raise NotFoundError("Class", class_id)
        return school_class

    async def create_student(self, data: StudentCreate) -> Student:
        """Enroll a new student."""
        await self._validate_class(data.class_id)

        number_gen = DocumentNumberGenerator(self.db)
        student_number = await number_gen.generate(DocumentPrefix.STUDENT)

        student = Student(
            student_number=student_number,
            name=data.name,
            roll_number=data.roll_number,
            class_id=data.class_id,
            address=data.address,
            date_of_birth=data.date_of_birth,
            opening_balance=round_money(data.opening_balance),
            in_tuition=data.in_tuition,
            total_attendance=data.total_attendance,
            present_attendance=data.present_attendance,
        )
        self.db.add(student)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=student_number,
            new_values={
                "name": data.name,
                "class_id": data.class_id,
                "opening_balance": str(student.opening_balance),
                "in_tuition": data.in_tuition,
            },
        )

        await self.db.commit()
        return await self.get_student_by_id(student.id)

    async def get_student_by_id(self, student_id: int) -> Student:
        """Get student by ID with class loaded."""
        result = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .options(selectinload(Student.school_class).selectinload(SchoolClass.fees))
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    async def list_students(
        self,
        class_id: int | None = None,
        search: str | None = None,
    ) -> list[Student]:
        """List students by roll number then name, optionally for one class."""
        query = (
            select(Student)
            .options(selectinload(Student.school_class))
            .order_by(Student.roll_number, Student.name, Student.id)
        )
        if class_id is not None:
            query = query.where(Student.class_id == class_id)
        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    Student.name.ilike(search_term),
                    Student.student_number.ilike(search_term),
                )
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_student(self, student_id: int, data: StudentUpdate) -> Student:
        """Update a student (only provided fields)."""
        student = await self.get_student_by_id(student_id)
        update = data.model_dump(exclude_unset=True)

        if update.get("class_id") is not None:
            await self._validate_class(update["class_id"])
        if "opening_balance" in update:
            if update["opening_balance"] is None:
                raise ValidationError("opening_balance cannot be null", field="opening_balance")
            update["opening_balance"] = round_money(update["opening_balance"])

        total = update.get("total_attendance", student.total_attendance)
        present = update.get("present_attendance", student.present_attendance)
        if total is not None and present is not None and present > total:
            raise ValidationError(
                "present_attendance cannot exceed total_attendance", field="present_attendance"
            )

        old_values: dict = {}
        new_values: dict = {}
        for key, value in update.items():
            current = getattr(student, key)
            if value is not None and value != current:
                old_values[key] = str(current)
                new_values[key] = str(value)
                setattr(student, key, value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Student",
                entity_id=student_id,
                entity_identifier=student.student_number,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        # Class may have changed: reload relation
        await self.db.refresh(student, attribute_names=["school_class"])
        return await self.get_student_by_id(student_id)
