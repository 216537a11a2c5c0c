from school_office.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    DuplicateError,
    ConflictError,
    PartialRepairError,
    PdfGenerationUnavailableError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "DuplicateError",
    "ConflictError",
    "PartialRepairError",
    "PdfGenerationUnavailableError",
]
