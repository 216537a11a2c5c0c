"""Service for school settings (single row)."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.audit import AuditAction, AuditService
from school_office.core.school_settings.models import SchoolSettings
from school_office.core.school_settings.schemas import SchoolSettingsUpdate


async def get_school_settings(db: AsyncSession) -> SchoolSettings:
    """Get the single school settings row; create with defaults if missing."""
    result = await db.execute(select(SchoolSettings).order_by(SchoolSettings.id).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        row = SchoolSettings(
            school_name="",
            school_address="",
            school_phone="",
            school_logo_url="",
        )
        db.add(row)
        await db.flush()
        await db.refresh(row)
    return row


async def update_school_settings(
    db: AsyncSession,
    data: SchoolSettingsUpdate,
) -> SchoolSettings:
    """Update school settings (only provided fields)."""
    row = await get_school_settings(db)
    update = data.model_dump(exclude_unset=True)
    old_values = {}
    for key, value in update.items():
        old_values[key] = getattr(row, key)
        setattr(row, key, value if value is not None else "")
    if update:
        await AuditService(db).log(
            action=AuditAction.UPDATE,
            entity_type="SchoolSettings",
            entity_id=row.id,
            old_values=old_values,
            new_values=update,
        )
    await db.flush()
    await db.refresh(row)
    return row
