"""Tests for classes and their fee catalog."""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.audit import AuditAction, AuditService
from school_office.core.exceptions import DuplicateError, NotFoundError
from school_office.modules.classes.models import FeeKind
from school_office.modules.classes.schemas import ClassCreate, ClassFeesUpdate, ClassUpdate
from school_office.modules.classes.service import ClassService
from school_office.modules.invoices.schemas import InvoiceGenerateRequest
from school_office.modules.invoices.service import InvoiceService
from school_office.modules.students.schemas import StudentCreate
from school_office.modules.students.service import StudentService


class TestClassService:
    """Tests for ClassService."""

    async def test_create_class_has_every_fee_at_zero(self, db_session: AsyncSession):
        school_class = await ClassService(db_session).create_class(ClassCreate(name="One", section="B"))

        assert school_class.display_name == "One B"
        schedule = school_class.fee_schedule
        assert set(schedule) == set(FeeKind)
        assert all(amount == Decimal("0") for amount in schedule.values())

    async def test_duplicate_class_rejected(self, db_session: AsyncSession):
        service = ClassService(db_session)
        await service.create_class(ClassCreate(name="One", section="A"))
        with pytest.raises(DuplicateError):
            await service.create_class(ClassCreate(name="One", section="A"))
        # Same name, other section is fine
        await service.create_class(ClassCreate(name="One", section="B"))

    async def test_update_fees_overwrites_given_kinds_only(self, db_session: AsyncSession):
        service = ClassService(db_session)
        school_class = await service.create_class(ClassCreate(name="Two"))
        await service.update_class_fees(
            school_class.id,
            ClassFeesUpdate(fees={FeeKind.MONTHLY: Decimal("900"), FeeKind.EXAM: Decimal("250")}),
        )
        updated = await service.update_class_fees(
            school_class.id, ClassFeesUpdate(fees={FeeKind.MONTHLY: Decimal("950")})
        )

        assert updated.fee_amount(FeeKind.MONTHLY) == Decimal("950.00")
        assert updated.fee_amount(FeeKind.EXAM) == Decimal("250.00")
        assert updated.fee_amount(FeeKind.TIE_BELT) == Decimal("0.00")

        logs = await AuditService(db_session).list_for_entity("SchoolClass", school_class.id)
        fee_logs = [log for log in logs if log.action == AuditAction.UPDATE_FEES.value]
        assert len(fee_logs) == 2
        assert fee_logs[0].old_values == {"monthly": "900.00"}

    async def test_fee_change_leaves_existing_invoices(self, db_session: AsyncSession):
        service = ClassService(db_session)
        school_class = await service.create_class(ClassCreate(name="Two"))
        await service.update_class_fees(
            school_class.id, ClassFeesUpdate(fees={FeeKind.MONTHLY: Decimal("900")})
        )
        student = await StudentService(db_session).create_student(
            StudentCreate(name="Asha", class_id=school_class.id)
        )
        invoice = await InvoiceService(db_session).generate_or_update_invoice(
            InvoiceGenerateRequest(
                student_id=student.id, month="Baisakh", year=2081, selected_fees=[FeeKind.MONTHLY]
            )
        )

        await service.update_class_fees(
            school_class.id, ClassFeesUpdate(fees={FeeKind.MONTHLY: Decimal("1100")})
        )

        invoice = await InvoiceService(db_session).get_invoice_by_id(invoice.id)
        assert invoice.total_billed == Decimal("900.00")

    async def test_rename_class(self, db_session: AsyncSession):
        service = ClassService(db_session)
        school_class = await service.create_class(ClassCreate(name="Nursery"))
        renamed = await service.update_class(school_class.id, ClassUpdate(name="LKG"))
        assert renamed.name == "LKG"

    async def test_rename_onto_existing_rejected(self, db_session: AsyncSession):
        service = ClassService(db_session)
        await service.create_class(ClassCreate(name="LKG"))
        school_class = await service.create_class(ClassCreate(name="UKG"))
        with pytest.raises(DuplicateError):
            await service.update_class(school_class.id, ClassUpdate(name="LKG"))

    async def test_get_unknown_class(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await ClassService(db_session).get_class_by_id(9999)


class TestClassEndpoints:
    async def test_create_and_update_fees(self, client: AsyncClient):
        response = await client.post("/api/v1/classes", json={"name": "Four", "section": "A"})
        assert response.status_code == 201
        class_id = response.json()["data"]["id"]
        assert response.json()["data"]["fees"]["monthly"] == 0.0

        response = await client.put(
            f"/api/v1/classes/{class_id}/fees",
            json={"fees": {"monthly": "1200", "tieBelt": "150"}},
        )
        assert response.status_code == 200
        fees = response.json()["data"]["fees"]
        assert fees["monthly"] == 1200.0
        assert fees["tieBelt"] == 150.0

        response = await client.get("/api/v1/classes")
        assert [c["display_name"] for c in response.json()["data"]] == ["Four A"]

    async def test_negative_fee_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/classes", json={"name": "Four"})
        class_id = response.json()["data"]["id"]
        response = await client.put(
            f"/api/v1/classes/{class_id}/fees", json={"fees": {"exam": "-5"}}
        )
        assert response.status_code == 422

    async def test_unknown_fee_kind_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/classes", json={"name": "Four"})
        class_id = response.json()["data"]["id"]
        response = await client.put(
            f"/api/v1/classes/{class_id}/fees", json={"fees": {"canteen": "5"}}
        )
        assert response.status_code == 422

    async def test_duplicate_class_409(self, client: AsyncClient):
        await client.post("/api/v1/classes", json={"name": "Four"})
        response = await client.post("/api/v1/classes", json={"name": "Four"})
        assert response.status_code == 409
        assert response.json()["success"] is False
