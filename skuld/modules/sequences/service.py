"""
Sequential legal numbering of documents.

References look like ``FAC-2025-0001``. The counter is incremented with a
single INSERT .. ON CONFLICT DO UPDATE .. RETURNING statement, so concurrent
callers never read the same value. The statement runs inside the caller's
transaction: the row stays locked until commit, and a rollback hands the
number back, which keeps the series gap-free.
"""
from datetime import date
from typing import Optional
from uuid import UUID, uuid4
import logging

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from skuld.common.exceptions import SequencingError
from skuld.modules.sequences.models import Sequence, DocType, DOC_PREFIX

logger = logging.getLogger(__name__)


def format_reference(prefix: str, year: int, value: int) -> str:
    return f"{prefix}{year}-{value:04d}"


class SequenceGenerator:

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(Sequence)
        if dialect == "sqlite":
            return sqlite.insert(Sequence)
        raise SequencingError(f"numbering failed: unsupported database {dialect}")

    async def next_reference(self, tenant_id: UUID, doc_type: DocType, year: Optional[int] = None) -> str:
        """Reserve the next reference for (tenant, doc_type, year).

        Does not commit; the caller owns the transaction.
        """
        year = year or date.today().year
        prefix = DOC_PREFIX[doc_type]

        stmt = self._insert().values(
            id=uuid4(),
            tenant_id=tenant_id,
            doc_type=doc_type,
            year=year,
            prefix=prefix,
            current_val=1,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["tenant_id", "doc_type", "year"],
            set_={"current_val": Sequence.current_val + 1},
        ).returning(Sequence.current_val, Sequence.prefix)

        try:
            row = (await self.db.execute(stmt)).one()
        except SQLAlchemyError as e:
            logger.error(f"Sequence increment failed for {doc_type.value}/{year}: {e}")
            raise SequencingError()

        return format_reference(row.prefix, year, row.current_val)
