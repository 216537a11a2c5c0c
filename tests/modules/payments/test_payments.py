"""Tests for recording payments."""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.audit import AuditAction, AuditService
from school_office.core.exceptions import NotFoundError, ValidationError
from school_office.modules.classes.models import FeeKind
from school_office.modules.classes.schemas import ClassCreate, ClassFeesUpdate
from school_office.modules.classes.service import ClassService
from school_office.modules.invoices.schemas import InvoiceGenerateRequest
from school_office.modules.invoices.service import InvoiceService
from school_office.modules.payments.schemas import PaymentCreate
from school_office.modules.payments.service import PaymentService
from school_office.modules.students.schemas import StudentCreate
from school_office.modules.students.service import StudentService


async def _setup_test_data(db_session: AsyncSession) -> dict:
    """Class with monthly fee 1000, one student and a Baisakh invoice."""
    classes = ClassService(db_session)
    school_class = await classes.create_class(ClassCreate(name="Three"))
    await classes.update_class_fees(
        school_class.id, ClassFeesUpdate(fees={FeeKind.MONTHLY: Decimal("1000")})
    )
    student = await StudentService(db_session).create_student(
        StudentCreate(name="Bikash Thapa", class_id=school_class.id, roll_number=4)
    )
    invoice = await InvoiceService(db_session).generate_or_update_invoice(
        InvoiceGenerateRequest(
            student_id=student.id, month="Baisakh", year=2081, selected_fees=[FeeKind.MONTHLY]
        )
    )
    return {"class_id": school_class.id, "student_id": student.id, "invoice_id": invoice.id}


class TestPaymentService:
    """Tests for PaymentService."""

    async def test_add_payment(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        service = PaymentService(db_session)

        payment = await service.add_payment(
            PaymentCreate(
                student_id=data["student_id"], invoice_id=data["invoice_id"], amount=Decimal("250.50")
            )
        )

        assert payment.receipt_number.startswith("RCP-")
        assert payment.amount == Decimal("250.50")
        assert payment.invoice.total_paid == Decimal("250.50")
        assert payment.invoice.balance == Decimal("749.50")
        assert payment.student.id == data["student_id"]

    async def test_partial_payments_accumulate(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        service = PaymentService(db_session)
        for amount in ("300", "300", "400"):
            await service.add_payment(
                PaymentCreate(
                    student_id=data["student_id"], invoice_id=data["invoice_id"], amount=Decimal(amount)
                )
            )

        invoice = await InvoiceService(db_session).get_invoice_by_id(data["invoice_id"])
        assert invoice.total_paid == Decimal("1000.00")
        assert invoice.balance == Decimal("0.00")
        assert invoice.status == "Paid"
        assert len(invoice.payments) == 3

        payments = await service.list_payments_for_student(data["student_id"])
        receipts = [p.receipt_number for p in payments]
        assert len(set(receipts)) == 3
        assert receipts == sorted(receipts, reverse=True)

    async def test_payment_is_audited(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        payment = await PaymentService(db_session).add_payment(
            PaymentCreate(student_id=data["student_id"], invoice_id=data["invoice_id"], amount=Decimal("100"))
        )

        logs = await AuditService(db_session).list_for_entity("Payment", payment.id)
        assert len(logs) == 1
        assert logs[0].action == AuditAction.ADD_PAYMENT.value
        assert logs[0].new_values["invoice_balance"] == "900.00"
        assert await AuditService(db_session).count(AuditAction.ADD_PAYMENT) == 1

    async def test_unknown_student(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        with pytest.raises(NotFoundError):
            await PaymentService(db_session).add_payment(
                PaymentCreate(student_id=9999, invoice_id=data["invoice_id"], amount=Decimal("10"))
            )

    async def test_zero_amount_rejected_by_service(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        request = PaymentCreate.model_construct(
            student_id=data["student_id"], invoice_id=data["invoice_id"], amount=Decimal("0")
        )
        with pytest.raises(ValidationError):
            await PaymentService(db_session).add_payment(request)

    async def test_list_for_unknown_student(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await PaymentService(db_session).list_payments_for_student(9999)


class TestPaymentEndpoints:
    async def test_get_payment(self, client: AsyncClient, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        response = await client.post(
            "/api/v1/payments",
            json={"student_id": data["student_id"], "invoice_id": data["invoice_id"], "amount": 1200},
        )
        assert response.status_code == 201
        payment_id = response.json()["data"]["id"]

        response = await client.get(f"/api/v1/payments/{payment_id}")
        assert response.status_code == 200
        body = response.json()["data"]
        assert body["amount"] == 1200.0
        assert body["invoice_id"] == data["invoice_id"]

        response = await client.get(f"/api/v1/invoices/{data['invoice_id']}")
        assert response.json()["data"]["balance"] == -200.0
        assert response.json()["data"]["status"] == "Overpaid"

    async def test_payment_for_other_student_422(self, client: AsyncClient, db_session: AsyncSession):
        data = await _setup_test_data(db_session)
        other = await StudentService(db_session).create_student(
            StudentCreate(name="Other", class_id=data["class_id"])
        )
        response = await client.post(
            "/api/v1/payments",
            json={"student_id": other.id, "invoice_id": data["invoice_id"], "amount": 10},
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "invoice_id"

    async def test_missing_payment_404(self, client: AsyncClient):
        response = await client.get("/api/v1/payments/9999")
        assert response.status_code == 404
