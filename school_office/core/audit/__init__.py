from school_office.core.audit.models import AuditLog
from school_office.core.audit.service import AuditAction, AuditService

__all__ = ["AuditLog", "AuditAction", "AuditService"]
