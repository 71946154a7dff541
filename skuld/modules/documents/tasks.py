"""
Background tasks for document PDF snapshots
"""
from sqlalchemy import select
import asyncio
import logging

from skuld.core.celery import celery_app
from skuld.core.config import settings
from skuld.database.database import AsyncSessionLocal
from skuld.modules.company.models import CompanySettings
from skuld.modules.documents.crud import DocumentRepository
from skuld.modules.documents.service import pdf_key, render_document_pdf

logger = logging.getLogger(__name__)


@celery_app.task
def backfill_document_pdfs():
    """
    Periodic task rendering the snapshots that send() could not store
    """
    try:
        logger.info("Starting PDF snapshot backfill")

        rendered = asyncio.run(_backfill_async())

        logger.info(f"PDF snapshot backfill completed, {rendered} document(s) rendered")
        return {"status": "completed", "rendered": rendered}

    except Exception as e:
        logger.error(f"PDF backfill failed: {str(e)}")
        raise


async def _backfill_async(session_factory=None, storage=None, renderer=None, batch_size=None) -> int:
    """Async helper for the backfill. Returns the number of PDFs stored."""
    if storage is None:
        from skuld.modules.files.dependencies import get_object_store
        storage = get_object_store()
    if renderer is None:
        from skuld.modules.pdf.dependencies import get_pdf_renderer
        renderer = get_pdf_renderer()
    session_factory = session_factory or AsyncSessionLocal
    batch_size = batch_size or settings.PDF_BACKFILL_BATCH_SIZE

    rendered = 0
    # Rows left unmarked in this run stay at the head of the query
    skipped = 0
    settings_by_tenant = {}

    async with session_factory() as db:
        repo = DocumentRepository(db)
        while rendered < batch_size:
            documents = await repo.list_missing_snapshot(limit=batch_size, offset=skipped)
            if not documents:
                break
            pending = [(document.id, document.tenant_id, document.reference) for document in documents]

            for document_id, tenant_id, reference in pending:
                if rendered >= batch_size:
                    break
                key = pdf_key(document_id)
                if await storage.exists(key):
                    await repo.mark_pdf_stored(document_id)
                    await db.commit()
                    continue

                if tenant_id not in settings_by_tenant:
                    settings_by_tenant[tenant_id] = (await db.execute(
                        select(CompanySettings).where(CompanySettings.tenant_id == tenant_id)
                    )).scalar_one_or_none()
                settings_row = settings_by_tenant[tenant_id]
                if settings_row is None:
                    logger.warning(f"Settings missing for tenant {tenant_id}, {reference} skipped")
                    skipped += 1
                    continue

                try:
                    full = await repo.get_by_id(tenant_id, document_id)
                    pdf_bytes = await render_document_pdf(renderer, storage, settings_row, full)
                    await storage.put(key, pdf_bytes, "application/pdf")
                    await repo.mark_pdf_stored(document_id)
                    await db.commit()
                    rendered += 1
                    logger.info(f"Backfilled PDF for {reference}")
                except Exception as e:
                    await db.rollback()
                    settings_by_tenant.clear()
                    skipped += 1
                    logger.error(f"Failed to backfill PDF for {document_id}: {str(e)}")

    return rendered
