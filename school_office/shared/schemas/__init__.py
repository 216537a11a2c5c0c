from school_office.shared.schemas.base import (
    ApiResponse,
    BaseSchema,
    SuccessResponse,
    ErrorResponse,
    ErrorDetail,
    TimestampMixin,
)

__all__ = [
    "ApiResponse",
    "BaseSchema",
    "SuccessResponse",
    "ErrorResponse",
    "ErrorDetail",
    "TimestampMixin",
]
