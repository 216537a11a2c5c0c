"""API for school settings (document headers)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.database.session import get_db
from school_office.core.school_settings.schemas import SchoolSettingsResponse, SchoolSettingsUpdate
from school_office.core.school_settings.service import get_school_settings, update_school_settings
from school_office.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/school-settings", tags=["School Settings"])


@router.get("", response_model=ApiResponse[SchoolSettingsResponse])
async def get_settings(db: AsyncSession = Depends(get_db)):
    """Get school settings (name, address, phone, logo URL)."""
    row = await get_school_settings(db)
    await db.commit()
    return ApiResponse(success=True, data=SchoolSettingsResponse.from_row(row))


@router.put("", response_model=ApiResponse[SchoolSettingsResponse])
async def put_settings(
    data: SchoolSettingsUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update school settings (only provided fields)."""
    row = await update_school_settings(db, data)
    await db.commit()
    return ApiResponse(
        success=True,
        message="School settings updated",
        data=SchoolSettingsResponse.from_row(row),
    )
