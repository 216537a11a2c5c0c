"""PDF generation service (bills, receipts, marksheets) from HTML templates."""

import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from num2words import num2words

from school_office.core.config import settings
from school_office.core.exceptions import PdfGenerationUnavailableError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates" / "pdf"


def amount_to_words(amount: float) -> str:
    """Convert amount to words (e.g. 5500 -> 'Five Thousand, Five Hundred Rupees Only')."""
    amount_int = int(round(amount, 0))
    words = num2words(amount_int, lang="en").title()
    return f"{words} {settings.currency_label} Only"


def _money(value) -> float:
    return float(value or 0)


class PDFService:
    """Generate PDF documents from Jinja2 templates and WeasyPrint."""

    def __init__(self) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )
        self._env.filters["money"] = lambda value: f"{settings.currency_symbol} {float(value or 0):,.2f}"

    def render_html(self, template_name: str, context: dict) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context)

    def _render_pdf(self, template_name: str, context: dict) -> bytes:
        try:
            from weasyprint import HTML
        except (OSError, ImportError) as e:
            raise PdfGenerationUnavailableError(
                f"PDF generation unavailable (WeasyPrint/system libs). {e!s}"
            ) from e
        html_content = self.render_html(template_name, context)
        try:
            return HTML(string=html_content).write_pdf()
        except Exception as e:
            logger.exception("Rendering %s failed", template_name)
            raise PdfGenerationUnavailableError(str(e)) from e

    def generate_bill_pdf(self, context: dict) -> bytes:
        """Render one student's bill."""
        return self._render_pdf("bill.html", context)

    def generate_receipt_pdf(self, context: dict) -> bytes:
        """Render a payment receipt."""
        return self._render_pdf("receipt.html", context)

    def generate_bulk_bills_pdf(self, context: dict) -> bytes:
        """Render the bills of a whole class, one page each."""
        return self._render_pdf("bulk_bills.html", context)

    def generate_marksheet_pdf(self, context: dict) -> bytes:
        """Render marksheets, one page per student."""
        return self._render_pdf("marksheet.html", context)


def _school_info(school_settings) -> dict:
    return {
        "name": school_settings.school_name or "",
        "address": school_settings.school_address or "",
        "phone": school_settings.school_phone or "",
        "logo_url": school_settings.school_logo_url or "",
    }


def _student_info(student) -> dict:
    return {
        "name": student.name,
        "student_number": student.student_number,
        "roll_number": student.roll_number,
        "address": student.address or "",
    }


def _invoice_info(invoice) -> dict:
    return {
        "invoice_number": invoice.invoice_number,
        "month": invoice.month,
        "year": invoice.year,
        "period": invoice.period_label,
        "created_at": invoice.created_at,
        "lines": [
            {
                "description": line.label,
                "amount": _money(line.amount),
                "is_carry": line.is_carry,
            }
            for line in invoice.lines
        ],
        "current_charges": _money(invoice.current_charges),
        "total_billed": _money(invoice.total_billed),
        "total_paid": _money(invoice.total_paid),
        "balance": _money(invoice.balance),
        "status": invoice.payment_state.value,
    }


def build_bill_context(invoice, school_settings, payment=None) -> dict:
    """Bundle for a bill (or a receipt when ``payment`` is given).

    Needs invoice.lines, invoice.student and invoice.school_class loaded.
    """
    context = {
        "school": _school_info(school_settings),
        "student": _student_info(invoice.student),
        "class_name": invoice.school_class.display_name if invoice.school_class else "",
        "invoice": _invoice_info(invoice),
        "previous_dues": _money(invoice.previous_dues),
        "carried_amount": _money(invoice.carried_amount),
        "payment": None,
        "generated_at": datetime.now(),
    }
    if payment is not None:
        context["payment"] = {
            "receipt_number": payment.receipt_number,
            "amount": _money(payment.amount),
            "paid_at": payment.paid_at,
        }
    return context


def build_receipt_context(payment, school_settings) -> dict:
    """Bundle for a payment receipt, with the amount in words."""
    context = build_bill_context(payment.invoice, school_settings, payment=payment)
    context["amount_in_words"] = amount_to_words(_money(payment.amount))
    return context


def build_bulk_bills_context(invoices: Sequence, school_settings, class_name: str, period: str) -> dict:
    """Bills of one class for one period."""
    return {
        "school": _school_info(school_settings),
        "class_name": class_name,
        "period": period,
        "bills": [build_bill_context(invoice, school_settings) for invoice in invoices],
        "generated_at": datetime.now(),
    }


def _marksheet_info(marksheet) -> dict:
    totals = marksheet.totals
    student = marksheet.student
    subjects = [
        {
            "code": mark.code,
            "name": mark.name,
            "full_marks_theory": float(mark.full_marks_theory),
            "full_marks_practical": float(mark.full_marks_practical),
            "theory_marks": float(mark.theory_marks),
            "practical_marks": float(mark.practical_marks),
            "grade": mark.grade.letter,
            "remarks": mark.grade.remarks,
        }
        for mark in marksheet.marks
    ]
    return {
        "student": _student_info(student),
        "attendance": (
            f"{student.present_attendance} / {student.total_attendance}"
            if student.total_attendance and student.present_attendance is not None
            else ""
        ),
        "core_subjects": [s for s, m in zip(subjects, marksheet.marks) if not m.is_extra],
        "extra_subjects": [s for s, m in zip(subjects, marksheet.marks) if m.is_extra],
        "total_full_marks": float(totals.full_marks),
        "total_obtained_marks": float(totals.obtained_marks),
        "percentage": float(totals.percentage),
        "gpa": float(totals.gpa),
        "grade": totals.grade.letter,
        "remarks": totals.grade.remarks,
    }


def build_marksheet_context(marksheets: Sequence, school_settings, exam, class_name: str) -> dict:
    """Marksheets of one exam (one page per student)."""
    return {
        "school": _school_info(school_settings),
        "exam": {"name": exam.name, "date": exam.exam_date},
        "class_name": class_name,
        "marksheets": [_marksheet_info(marksheet) for marksheet in marksheets],
        "generated_at": datetime.now(),
    }


pdf_service = PDFService()
