from enum import StrEnum
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.audit.models import AuditLog


class AuditAction(StrEnum):
    """Standard audit actions."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    # Domain-specific actions
    UPDATE_FEES = "UPDATE_FEES"
    GENERATE_INVOICE = "GENERATE_INVOICE"
    REGENERATE_INVOICE = "REGENERATE_INVOICE"
    BULK_GENERATE_INVOICES = "BULK_GENERATE_INVOICES"
    ADD_PAYMENT = "ADD_PAYMENT"
    REPAIR_CHAIN = "REPAIR_CHAIN"
    RECORD_RESULT = "RECORD_RESULT"


class AuditService:
    """Service for creating audit logs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: str | AuditAction,
        entity_type: str,
        entity_id: int,
        entity_identifier: str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        comment: str | None = None,
    ) -> AuditLog:
        """Create an audit log entry."""
        audit_log = AuditLog(
            action=str(action),
            entity_type=entity_type,
            entity_id=entity_id,
            entity_identifier=entity_identifier,
            old_values=old_values,
            new_values=new_values,
            comment=comment,
        )

        self.db.add(audit_log)
        await self.db.flush()

        return audit_log

    async def list_for_entity(
        self, entity_type: str, entity_id: int, limit: int = 50
    ) -> list[AuditLog]:
        """Latest entries for one entity, newest first."""
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self, action: str | AuditAction | None = None) -> int:
        query = select(func.count()).select_from(AuditLog)
        if action is not None:
            query = query.where(AuditLog.action == str(action))
        return (await self.db.execute(query)).scalar_one()
