from datetime import datetime
from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.documents.models import DocumentSequence


class DocumentPrefix(StrEnum):
    STUDENT = "STU"
    INVOICE = "INV"
    RECEIPT = "RCP"


class DocumentNumberGenerator:
    """
    Generates sequential document numbers in format: PREFIX-YYYY-NNNNNN

    Examples:
        STU-2026-000001
        INV-2026-000042
        RCP-2026-001234
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate(self, prefix: str | DocumentPrefix, year: int | None = None) -> str:
        """
        Generate next document number for given prefix and year.

        The sequence row is read with SELECT FOR UPDATE so concurrent
        transactions never hand out the same number.
        """
        prefix = str(prefix)
        if year is None:
            year = datetime.now().year

        stmt = (
            select(DocumentSequence)
            .where(DocumentSequence.prefix == prefix, DocumentSequence.year == year)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        sequence = result.scalar_one_or_none()

        if sequence is None:
            sequence = DocumentSequence(prefix=prefix, year=year, last_number=0)
            self.session.add(sequence)
            await self.session.flush()

        sequence.last_number += 1
        await self.session.flush()

        return f"{prefix}-{year}-{sequence.last_number:06d}"
