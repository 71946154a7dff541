"""
Document repository.

Writes join the caller's transaction and never commit; the lifecycle
service decides when a transition is complete. Status changes go through
``update_status``, a conditional UPDATE keyed on the expected current
status, so a concurrent transition turns into a no-op instead of a double
write.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from sqlalchemy.orm import selectinload
from typing import Iterable, List, Optional
from uuid import UUID, uuid4

from skuld.common.pagination import PageParams
from skuld.modules.documents.calculator import DocumentTotals, compute_totals, line_total
from skuld.modules.documents.models import Document, DocumentLine, DocumentStatus
from skuld.modules.sequences.models import DocType


class DocumentRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, tenant_id: UUID, document_id: UUID) -> Optional[Document]:
        """Document with its lines (ordered by position) and contact"""
        result = await self.db.execute(
            select(Document)
            .where(Document.id == document_id, Document.tenant_id == tenant_id)
            .options(selectinload(Document.lines), selectinload(Document.contact))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_status(self, tenant_id: UUID, document_id: UUID) -> Optional[DocumentStatus]:
        result = await self.db.execute(
            select(Document.status).where(Document.id == document_id, Document.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def list(
        self,
        tenant_id: UUID,
        params: PageParams,
        doc_type: Optional[DocType] = None,
        status: Optional[DocumentStatus] = None,
    ) -> tuple[List[Document], int]:
        conditions = [Document.tenant_id == tenant_id]
        if doc_type:
            conditions.append(Document.doc_type == doc_type)
        if status:
            conditions.append(Document.status == status)

        total = (await self.db.execute(
            select(func.count(Document.id)).where(*conditions)
        )).scalar() or 0

        result = await self.db.execute(
            select(Document).where(*conditions)
            .options(selectinload(Document.contact))
            .order_by(Document.created_at.desc(), Document.id)
            .offset(params.offset).limit(params.per_page)
        )
        return list(result.scalars().all()), total

    async def create(self, tenant_id: UUID, values: dict, lines: Iterable = ()) -> Document:
        """Insert a document and its lines. Totals are computed from the lines
        when there are any, otherwise taken from ``values`` (credit notes)."""
        document = Document(id=uuid4(), tenant_id=tenant_id, **values)
        rows = self._build_lines(document.id, lines)
        if rows:
            for column, value in compute_totals(rows).as_columns().items():
                setattr(document, column, value)

        self.db.add(document)
        self.db.add_all(rows)
        await self.db.flush()
        return document

    async def replace_lines(self, document_id: UUID, lines: Iterable) -> DocumentTotals:
        """Delete every line of the document, insert the new set and return the totals"""
        await self.db.execute(
            delete(DocumentLine)
            .where(DocumentLine.document_id == document_id)
            .execution_options(synchronize_session=False)
        )
        rows = self._build_lines(document_id, lines)
        self.db.add_all(rows)
        await self.db.flush()
        return compute_totals(rows)

    def _build_lines(self, document_id: UUID, lines: Iterable) -> List[DocumentLine]:
        """Fresh line rows numbered 1..n in the given order"""
        return [
            DocumentLine(
                id=uuid4(),
                document_id=document_id,
                position=position,
                description=line.description,
                quantity=line.quantity,
                unit=line.unit,
                unit_price=line.unit_price,
                total=line_total(line.quantity, line.unit_price),
                fiscal_category=line.fiscal_category,
            )
            for position, line in enumerate(lines, start=1)
        ]

    async def update_fields(
        self,
        tenant_id: UUID,
        document_id: UUID,
        values: dict,
        expected_status: Optional[DocumentStatus] = None,
    ) -> bool:
        """Conditional field update. Returns False when no row matched."""
        stmt = update(Document).where(Document.id == document_id, Document.tenant_id == tenant_id)
        if expected_status is not None:
            stmt = stmt.where(Document.status == expected_status)
        result = await self.db.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update_status(
        self,
        tenant_id: UUID,
        document_id: UUID,
        expected_status: DocumentStatus,
        new_status: DocumentStatus,
        extra: Optional[dict] = None,
    ) -> bool:
        """Compare-and-swap on the status column.

        Returns False (and writes nothing) when the document is no longer in
        ``expected_status``.
        """
        values = dict(extra or {})
        values["status"] = new_status
        return await self.update_fields(tenant_id, document_id, values, expected_status=expected_status)

    async def delete(
        self,
        tenant_id: UUID,
        document_id: UUID,
        expected_status: DocumentStatus = DocumentStatus.DRAFT,
    ) -> bool:
        """Hard delete, only while the document is still in ``expected_status``"""
        result = await self.db.execute(
            delete(Document)
            .where(
                Document.id == document_id,
                Document.tenant_id == tenant_id,
                Document.status == expected_status,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.db.execute(
            delete(DocumentLine)
            .where(DocumentLine.document_id == document_id)
            .execution_options(synchronize_session=False)
        )
        return True

    async def list_missing_snapshot(self, limit: int, offset: int = 0) -> List[Document]:
        """Numbered documents of every tenant still without a stored PDF, oldest first"""
        result = await self.db.execute(
            select(Document)
            .where(Document.reference.is_not(None), Document.pdf_stored_at.is_(None))
            .order_by(Document.created_at, Document.id)
            .offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def mark_pdf_stored(self, document_id: UUID):
        await self.db.execute(
            update(Document)
            .where(Document.id == document_id)
            .values(pdf_stored_at=func.now())
            .execution_options(synchronize_session=False)
        )
