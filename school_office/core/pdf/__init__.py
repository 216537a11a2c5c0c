from school_office.core.pdf.service import (
    PDFService,
    amount_to_words,
    build_bill_context,
    build_bulk_bills_context,
    build_marksheet_context,
    build_receipt_context,
    pdf_service,
)

__all__ = [
    "PDFService",
    "pdf_service",
    "amount_to_words",
    "build_bill_context",
    "build_bulk_bills_context",
    "build_marksheet_context",
    "build_receipt_context",
]
