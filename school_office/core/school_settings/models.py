"""School settings model: one row for bill, receipt and marksheet headers."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from school_office.core.database.base import Base, BigIntPK


class SchoolSettings(Base):
    """Single row: school name, address, phone and logo URL."""

    __tablename__ = "school_settings"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    school_name: Mapped[str | None] = mapped_column(String(255), nullable=True, default="")
    school_address: Mapped[str | None] = mapped_column(String(500), nullable=True, default="")
    school_phone: Mapped[str | None] = mapped_column(String(100), nullable=True, default="")
    school_logo_url: Mapped[str | None] = mapped_column(String(1000), nullable=True, default="")
