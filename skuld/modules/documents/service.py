"""
Document lifecycle: DRAFT -> SENT -> PAID / CANCELLED.

Every transition runs in one database transaction. Status changes are
conditional on the status read at the start (``update_status``), and a
transition whose compare-and-swap matched nothing is rolled back and
reported as a conflict. Rolling back also releases any reference reserved
for it, so numbering stays gap-free.

The PDF snapshot taken by ``send`` happens after the commit and may fail on
its own; the hourly backfill task renders whatever is missing.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from datetime import date
from typing import Optional
from uuid import UUID, uuid4
import asyncio
import logging
import mimetypes

from skuld.common.exceptions import (
    ConflictError, InternalError, NotFoundError, SequencingError, ValidationError
)
from skuld.common.pagination import PageParams
from skuld.modules.company.models import CompanySettings
from skuld.modules.contacts.models import Contact
from skuld.modules.documents.crud import DocumentRepository
from skuld.modules.documents.models import Document, DocumentStatus
from skuld.modules.documents.schemas import DocumentCreate, DocumentUpdate
from skuld.modules.sequences.models import DocType
from skuld.modules.sequences.service import SequenceGenerator
from skuld.modules.transactions.models import Transaction, TransactionDirection

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("contact_id", "issued_date")


def pdf_key(document_id) -> str:
    """Object store key of a document snapshot"""
    return f"documents/{document_id}.pdf"


class DocumentLifecycleService:
    """Document CRUD and state transitions, scoped to one tenant"""

    def __init__(self, db: AsyncSession, storage=None, renderer=None):
        self.db = db
        self.storage = storage
        self.renderer = renderer
        self.repo = DocumentRepository(db)

    # ===== READS =====

    async def list_documents(
        self,
        tenant_id: UUID,
        params: PageParams,
        doc_type: Optional[DocType] = None,
        status: Optional[DocumentStatus] = None,
    ):
        return await self.repo.list(tenant_id, params, doc_type, status)

    async def get_document(self, tenant_id: UUID, document_id: UUID) -> Document:
        document = await self.repo.get_by_id(tenant_id, document_id)
        if not document:
            raise NotFoundError("Document")
        return document

    async def _require_status(self, tenant_id: UUID, document_id: UUID) -> DocumentStatus:
        current = await self.repo.get_status(tenant_id, document_id)
        if current is None:
            raise NotFoundError("Document")
        return current

    async def _require_contact(self, tenant_id: UUID, contact_id: UUID):
        result = await self.db.execute(
            select(Contact.id).where(Contact.id == contact_id, Contact.tenant_id == tenant_id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Contact")

    async def _commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Commit failed: {e}", exc_info=True)
            raise InternalError("Database error")

    # ===== CREATE / UPDATE =====

    async def create_document(self, tenant_id: UUID, document_data: DocumentCreate) -> Document:
        await self._require_contact(tenant_id, document_data.contact_id)

        values = document_data.model_dump(exclude={"lines"}, exclude_none=True)
        values.setdefault("issued_date", date.today())
        values["status"] = DocumentStatus.DRAFT

        document = await self.repo.create(tenant_id, values, document_data.lines)
        await self._commit()
        logger.info(f"Document {document.id} ({document.doc_type.value}) created as draft")
        return await self.get_document(tenant_id, document.id)

    async def update_document(self, tenant_id: UUID, document_id: UUID, patch: DocumentUpdate) -> Document:
        """Patch a draft. A given ``lines`` list replaces the whole set and the totals."""
        current = await self._require_status(tenant_id, document_id)
        if current != DocumentStatus.DRAFT:
            raise ConflictError("only a draft document can be modified")

        values = patch.model_dump(exclude_unset=True, exclude={"lines"})
        if not values and patch.lines is None:
            raise ValidationError("No fields to update")

        for field in REQUIRED_FIELDS:
            if field in values and values[field] is None:
                raise ValidationError(f"{field} cannot be empty", errors={field: "required"})

        if "contact_id" in values:
            await self._require_contact(tenant_id, values["contact_id"])

        if patch.lines is not None:
            totals = await self.repo.replace_lines(document_id, patch.lines)
            values.update(totals.as_columns())

        if not await self.repo.update_fields(tenant_id, document_id, values, expected_status=DocumentStatus.DRAFT):
            await self.db.rollback()
            raise ConflictError("only a draft document can be modified")

        await self._commit()
        return await self.get_document(tenant_id, document_id)

    # ===== TRANSITIONS =====

    async def send(self, tenant_id: UUID, document_id: UUID) -> Document:
        """Number the draft, mark it SENT, then snapshot it as PDF (best-effort)"""
        document = await self.get_document(tenant_id, document_id)
        if document.status != DocumentStatus.DRAFT:
            raise ConflictError("only a draft can be sent")

        try:
            reference = await SequenceGenerator(self.db).next_reference(tenant_id, document.doc_type)
        except SequencingError:
            await self.db.rollback()
            raise

        swapped = await self.repo.update_status(
            tenant_id, document_id, DocumentStatus.DRAFT, DocumentStatus.SENT, {"reference": reference}
        )
        if not swapped:
            # Lost the race: the rollback hands the reserved number back
            await self.db.rollback()
            raise ConflictError("only a draft can be sent")

        await self._commit()
        logger.info(f"Document {document_id} sent with reference {reference}")

        await self._store_snapshot(tenant_id, await self.get_document(tenant_id, document_id))
        return await self.get_document(tenant_id, document_id)

    async def _store_snapshot(self, tenant_id: UUID, document: Document) -> bool:
        """Render and store the PDF of a sent document. Never raises."""
        document_id = document.id
        if self.storage is None or self.renderer is None:
            logger.warning(f"No storage or renderer configured, PDF of {document_id} skipped")
            return False
        try:
            settings_row = (await self.db.execute(
                select(CompanySettings).where(CompanySettings.tenant_id == tenant_id)
            )).scalar_one_or_none()
            if settings_row is None:
                logger.warning(f"Settings missing for tenant {tenant_id}, PDF of {document_id} skipped")
                return False

            pdf_bytes = await render_document_pdf(self.renderer, self.storage, settings_row, document)
            await self.storage.put(pdf_key(document_id), pdf_bytes, "application/pdf")
            await self.repo.mark_pdf_stored(document_id)
            await self.db.commit()
            logger.info(f"PDF snapshot stored for {document.reference}")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.warning(f"PDF snapshot failed for {document_id}: {e}", exc_info=True)
            return False

    async def pay(self, tenant_id: UUID, document_id: UUID) -> dict:
        """Mark a SENT document as PAID and record the income in the ledger"""
        document = await self.get_document(tenant_id, document_id)
        if document.status != DocumentStatus.SENT:
            raise ConflictError("only a sent document can be paid")
        if document.total_ht <= 0:
            raise ConflictError("a document with a zero total cannot be paid")

        if not await self.repo.update_status(tenant_id, document_id, DocumentStatus.SENT, DocumentStatus.PAID):
            await self.db.rollback()
            raise ConflictError("only a sent document can be paid")

        transaction = Transaction(
            id=uuid4(),
            tenant_id=tenant_id,
            date=date.today(),
            amount=document.total_ht,
            direction=TransactionDirection.INCOME,
            label=f"Payment {document.reference}",
            payment_method=document.payment_method,
            document_id=document.id,
            contact_id=document.contact_id,
            is_second_hand=False,
        )
        self.db.add(transaction)
        await self._commit()
        await self.db.refresh(transaction)

        logger.info(f"Document {document.reference} paid, transaction {transaction.id}")
        return {
            "document": await self.get_document(tenant_id, document_id),
            "transaction": transaction,
        }

    async def cancel(self, tenant_id: UUID, document_id: UUID) -> dict:
        """Drafts are deleted; sent or paid documents are cancelled by a credit note"""
        document = await self.get_document(tenant_id, document_id)

        if document.status == DocumentStatus.CANCELLED:
            raise ConflictError("already cancelled")

        if document.status == DocumentStatus.DRAFT:
            if not await self.repo.delete(tenant_id, document_id, expected_status=DocumentStatus.DRAFT):
                await self.db.rollback()
                raise ConflictError("only a draft document can be deleted")
            await self._commit()
            logger.info(f"Draft {document_id} deleted")
            return {"message": "Draft deleted"}

        previous = document.status
        if not await self.repo.update_status(tenant_id, document_id, previous, DocumentStatus.CANCELLED):
            await self.db.rollback()
            raise ConflictError("already cancelled")

        credit_note = await self.repo.create(tenant_id, {
            "contact_id": document.contact_id,
            "doc_type": DocType.CREDIT_NOTE,
            "status": DocumentStatus.DRAFT,
            "reference": None,
            "quote_id": document.id,
            "issued_date": date.today(),
            "payment_method": document.payment_method,
            "total_bic_vente": document.total_bic_vente,
            "total_bic_presta": document.total_bic_presta,
            "total_bnc": document.total_bnc,
            "total_ht": document.total_ht,
            "notes": f"Credit note for cancellation of {document.reference}",
        })
        await self._commit()

        logger.info(f"Document {document.reference} cancelled ({previous.value}), credit note {credit_note.id}")
        return {
            "document": await self.get_document(tenant_id, document_id),
            "credit_note": await self.get_document(tenant_id, credit_note.id),
        }

    async def convert(self, tenant_id: UUID, document_id: UUID) -> Document:
        """Copy a quote into a new draft invoice. The quote is left untouched."""
        quote = await self.get_document(tenant_id, document_id)
        if quote.doc_type != DocType.QUOTE:
            raise ConflictError("only a quote can be converted")

        invoice = await self.repo.create(
            tenant_id,
            {
                "contact_id": quote.contact_id,
                "doc_type": DocType.INVOICE,
                "status": DocumentStatus.DRAFT,
                "quote_id": quote.id,
                "issued_date": date.today(),
                "payment_method": quote.payment_method,
                "payment_terms_days": quote.payment_terms_days,
                "notes": quote.notes,
                "terms": quote.terms,
                "footer_text": quote.footer_text,
            },
            quote.lines,
        )
        await self._commit()

        logger.info(f"Quote {quote.id} converted to invoice {invoice.id}")
        return await self.get_document(tenant_id, invoice.id)

    async def get_pdf(self, tenant_id: UUID, document_id: UUID) -> tuple[str, bytes]:
        """Stored snapshot as (reference, bytes)"""
        document = await self.get_document(tenant_id, document_id)
        if not document.reference:
            raise ConflictError("PDF only available after sending")

        data = await self.storage.get(pdf_key(document.id))
        if data is None:
            raise NotFoundError("PDF file")
        return document.reference, data


async def render_document_pdf(renderer, storage, settings_row: CompanySettings, document: Document) -> bytes:
    """Render a loaded document (lines and contact) with the issuer's logo when there is one"""
    logo = None
    logo_mime_type = None
    if settings_row.logo_url:
        logo = await storage.get(settings_row.logo_url)
        logo_mime_type = mimetypes.guess_type(settings_row.logo_url)[0]

    return await asyncio.to_thread(
        renderer.render_document,
        settings_row,
        document,
        list(document.lines),
        document.contact,
        logo,
        logo_mime_type,
    )
