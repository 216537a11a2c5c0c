from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class DuplicateError(AppException):
    """Duplicate resource."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


class ConflictError(AppException):
    """Operation conflicts with the current state of a resource."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=409, details=details)


class PartialRepairError(AppException):
    """Persisting a forward repair of an invoice chain failed part way.

    The transaction is rolled back by the caller, so nothing of the walk is
    stored. ``last_repaired_invoice_id`` is the last invoice whose rewrite was
    flushed before the failure (None if the first one failed); the walk can be
    resumed from ``failed_invoice_id`` through the chain repair endpoint.
    """

    def __init__(
        self,
        student_id: int,
        last_repaired_invoice_id: int | None,
        failed_invoice_id: int,
        reason: str | None = None,
    ):
        self.student_id = student_id
        self.last_repaired_invoice_id = last_repaired_invoice_id
        self.failed_invoice_id = failed_invoice_id
        message = (
            f"Ledger repair for student {student_id} failed at invoice {failed_invoice_id}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "student_id": student_id,
                "last_repaired_invoice_id": last_repaired_invoice_id,
                "failed_invoice_id": failed_invoice_id,
            },
        )


class PdfGenerationUnavailableError(AppException):
    """WeasyPrint/system libraries not available (e.g. pango missing)."""

    def __init__(self, message: str | None = None):
        msg = message or (
            "PDF generation is not available on this system. "
            "Install the WeasyPrint system dependencies (pango, glib)."
        )
        super().__init__(message=msg, status_code=503)
