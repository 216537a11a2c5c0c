"""Service for Classes module (fee catalog)."""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_office.core.audit import AuditAction, AuditService
from school_office.core.exceptions import DuplicateError, NotFoundError
from school_office.modules.classes.models import ClassFee, FeeKind, SchoolClass
from school_office.modules.classes.schemas import ClassCreate, ClassFeesUpdate, ClassUpdate
from school_office.shared.utils.money import round_money

logger = logging.getLogger(__name__)


class ClassService:
    """Service for managing classes and their fee schedules."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def _ensure_unique(self, name: str, section: str, exclude_id: int | None = None) -> None:
        query = select(SchoolClass.id).where(
            SchoolClass.name == name, SchoolClass.section == section
        )
        if exclude_id is not None:
            query = query.where(SchoolClass.id != exclude_id)
        if (await self.db.execute(query)).scalar_one_or_none() is not None:
            raise DuplicateError("Class", "name", f"{name} {section}".strip())

    async def create_class(self, data: ClassCreate) -> SchoolClass:
        """Create a class with every fee kind at 0."""
        await self._ensure_unique(data.name, data.section)

        school_class = SchoolClass(name=data.name, section=data.section)
        school_class.fees = [
            ClassFee(fee_kind=kind.value, amount=Decimal("0.00")) for kind in FeeKind
        ]
        self.db.add(school_class)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="SchoolClass",
            entity_id=school_class.id,
            entity_identifier=school_class.display_name,
            new_values={"name": data.name, "section": data.section},
        )

        await self.db.commit()
        return await self.get_class_by_id(school_class.id)

    async def get_class_by_id(self, class_id: int) -> SchoolClass:
        """Get class by ID with fees loaded."""
        result = await self.db.execute(
            select(SchoolClass)
            .where(SchoolClass.id == class_id)
            .options(selectinload(SchoolClass.fees))
        )
        school_class = result.scalar_one_or_none()
        if not school_class:
            raise NotFoundError("Class", class_id)
        return school_class

    async def list_classes(self) -> list[SchoolClass]:
        """List classes ordered by name and section."""
        result = await self.db.execute(
            select(SchoolClass)
            .options(selectinload(SchoolClass.fees))
            .order_by(SchoolClass.name, SchoolClass.section)
        )
        return list(result.scalars().all())

    async def update_class(self, class_id: int, data: ClassUpdate) -> SchoolClass:
        """Rename a class."""
        school_class = await self.get_class_by_id(class_id)
        old_values = {"name": school_class.name, "section": school_class.section}

        name = data.name if data.name is not None else school_class.name
        section = data.section if data.section is not None else school_class.section
        if (name, section) != (school_class.name, school_class.section):
            await self._ensure_unique(name, section, exclude_id=class_id)
            school_class.name = name
            school_class.section = section
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="SchoolClass",
                entity_id=class_id,
                old_values=old_values,
                new_values={"name": name, "section": section},
            )

        await self.db.commit()
        return await self.get_class_by_id(class_id)

    async def update_class_fees(self, class_id: int, data: ClassFeesUpdate) -> SchoolClass:
        """Overwrite the given fee kinds; the rest of the schedule is kept."""
        school_class = await self.get_class_by_id(class_id)
        rows = {FeeKind(fee.fee_kind): fee for fee in school_class.fees}

        old_values: dict[str, str] = {}
        new_values: dict[str, str] = {}
        for kind, amount in data.fees.items():
            amount = round_money(amount)
            row = rows.get(kind)
            if row is None:
                row = ClassFee(fee_kind=kind.value, amount=Decimal("0.00"))
                school_class.fees.append(row)
            if row.amount != amount:
                old_values[kind.value] = str(row.amount)
                new_values[kind.value] = str(amount)
                row.amount = amount

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE_FEES,
                entity_type="SchoolClass",
                entity_id=class_id,
                entity_identifier=school_class.display_name,
                old_values=old_values,
                new_values=new_values,
            )
            logger.info("Fee schedule of class %s updated: %s", class_id, new_values)

        await self.db.commit()
        return await self.get_class_by_id(class_id)
