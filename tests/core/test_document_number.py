from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix


class TestDocumentNumberGenerator:
    """Tests for document number generator."""

    async def test_generate_first_number(self, db_session: AsyncSession):
        """Test generating first document number."""
        number = await DocumentNumberGenerator(db_session).generate(DocumentPrefix.INVOICE, year=2026)
        assert number == "INV-2026-000001"

    async def test_generate_sequential_numbers(self, db_session: AsyncSession):
        """Test generating sequential document numbers."""
        gen = DocumentNumberGenerator(db_session)
        num1 = await gen.generate(DocumentPrefix.INVOICE, year=2026)
        num2 = await gen.generate(DocumentPrefix.INVOICE, year=2026)
        num3 = await gen.generate(DocumentPrefix.INVOICE, year=2026)

        assert num1 == "INV-2026-000001"
        assert num2 == "INV-2026-000002"
        assert num3 == "INV-2026-000003"

    async def test_different_prefixes(self, db_session: AsyncSession):
        """Test that different prefixes have independent sequences."""
        gen = DocumentNumberGenerator(db_session)
        inv = await gen.generate(DocumentPrefix.INVOICE, year=2026)
        rcp = await gen.generate(DocumentPrefix.RECEIPT, year=2026)
        inv2 = await gen.generate(DocumentPrefix.INVOICE, year=2026)

        assert inv == "INV-2026-000001"
        assert rcp == "RCP-2026-000001"
        assert inv2 == "INV-2026-000002"

    async def test_different_years(self, db_session: AsyncSession):
        """Test that different years have independent sequences."""
        gen = DocumentNumberGenerator(db_session)
        num_2026 = await gen.generate(DocumentPrefix.STUDENT, year=2026)
        num_2027 = await gen.generate(DocumentPrefix.STUDENT, year=2027)
        num_2026_2 = await gen.generate(DocumentPrefix.STUDENT, year=2026)

        assert num_2026 == "STU-2026-000001"
        assert num_2027 == "STU-2027-000001"
        assert num_2026_2 == "STU-2026-000002"

    async def test_format_with_leading_zeros(self, db_session: AsyncSession):
        """Test that numbers are padded with leading zeros."""
        gen = DocumentNumberGenerator(db_session)
        for _ in range(99):
            await gen.generate("STU", year=2026)

        num_100 = await gen.generate("STU", year=2026)
        assert num_100 == "STU-2026-000100"
