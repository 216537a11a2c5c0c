"""Schemas for school settings (document headers)."""

from pydantic import BaseModel, Field


class SchoolSettingsUpdate(BaseModel):
    """Update school settings (all optional)."""

    school_name: str | None = Field(None, max_length=255)
    school_address: str | None = Field(None, max_length=500)
    school_phone: str | None = Field(None, max_length=100)
    school_logo_url: str | None = Field(None, max_length=1000)


class SchoolSettingsResponse(BaseModel):
    """School settings for API response."""

    id: int
    school_name: str = ""
    school_address: str = ""
    school_phone: str = ""
    school_logo_url: str = ""

    model_config = {"from_attributes": True}

    @classmethod
    def from_row(cls, row) -> "SchoolSettingsResponse":
        return cls(
            id=row.id,
            school_name=row.school_name or "",
            school_address=row.school_address or "",
            school_phone=row.school_phone or "",
            school_logo_url=row.school_logo_url or "",
        )
