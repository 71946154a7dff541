"""
Tests for the legal numbering counters
"""

import pytest
from uuid import uuid4

from sqlalchemy import select

from skuld.modules.sequences.models import DocType, Sequence
from skuld.modules.sequences.service import SequenceGenerator, format_reference


class TestFormatReference:

    @pytest.mark.parametrize("prefix,year,value,expected", [
        ("FAC-", 2025, 1, "FAC-2025-0001"),
        ("DEV-", 2025, 42, "DEV-2025-0042"),
        ("AV-", 2024, 9999, "AV-2024-9999"),
        ("FAC-", 2025, 12345, "FAC-2025-12345"),
    ])
    def test_format(self, prefix, year, value, expected):
        assert format_reference(prefix, year, value) == expected


class TestSequenceGenerator:

    async def test_first_call_starts_at_one(self, db, tenant_id):
        reference = await SequenceGenerator(db).next_reference(tenant_id, DocType.INVOICE, year=2025)
        assert reference == "FAC-2025-0001"

    async def test_consecutive_values(self, db, tenant_id):
        generator = SequenceGenerator(db)
        references = [await generator.next_reference(tenant_id, DocType.INVOICE, year=2025) for _ in range(3)]
        await db.commit()

        assert references == ["FAC-2025-0001", "FAC-2025-0002", "FAC-2025-0003"]
        row = (await db.execute(select(Sequence).where(Sequence.tenant_id == tenant_id))).scalar_one()
        assert row.current_val == 3
        assert row.prefix == "FAC-"

    async def test_series_are_independent(self, db, tenant_id):
        generator = SequenceGenerator(db)

        assert await generator.next_reference(tenant_id, DocType.INVOICE, year=2025) == "FAC-2025-0001"
        assert await generator.next_reference(tenant_id, DocType.QUOTE, year=2025) == "DEV-2025-0001"
        assert await generator.next_reference(tenant_id, DocType.CREDIT_NOTE, year=2025) == "AV-2025-0001"
        assert await generator.next_reference(tenant_id, DocType.INVOICE, year=2026) == "FAC-2026-0001"
        assert await generator.next_reference(uuid4(), DocType.INVOICE, year=2025) == "FAC-2025-0001"
        assert await generator.next_reference(tenant_id, DocType.INVOICE, year=2025) == "FAC-2025-0002"

    async def test_rollback_releases_the_number(self, db, tenant_id):
        generator = SequenceGenerator(db)
        await generator.next_reference(tenant_id, DocType.INVOICE, year=2025)
        await db.commit()

        await generator.next_reference(tenant_id, DocType.INVOICE, year=2025)
        await db.rollback()

        assert await generator.next_reference(tenant_id, DocType.INVOICE, year=2025) == "FAC-2025-0002"
