"""Schemas for Classes module (fee catalog)."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from school_office.modules.classes.models import FeeKind


class ClassCreate(BaseModel):
    """Schema for creating a class. All fees start at 0."""

    name: str = Field(..., min_length=1, max_length=100)
    section: str = Field("", max_length=20)


class ClassUpdate(BaseModel):
    """Schema for renaming a class."""

    name: str | None = Field(None, min_length=1, max_length=100)
    section: str | None = Field(None, max_length=20)


class ClassFeesUpdate(BaseModel):
    """Per-key fee overwrite; omitted kinds keep their current amount."""

    fees: dict[FeeKind, Decimal] = Field(default_factory=dict)

    @field_validator("fees")
    @classmethod
    def validate_amounts(cls, v: dict[FeeKind, Decimal]) -> dict[FeeKind, Decimal]:
        for kind, amount in v.items():
            if amount < 0:
                raise ValueError(f"Fee '{kind.value}' cannot be negative")
        return v


class ClassResponse(BaseModel):
    """Schema for class response."""

    id: int
    name: str
    section: str
    display_name: str
    fees: dict[str, float]

    model_config = {"from_attributes": True}
