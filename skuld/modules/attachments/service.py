"""
Receipts attached to transactions
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from typing import List
from uuid import UUID, uuid4
import logging

from skuld.common.exceptions import InternalError, NotFoundError, ValidationError
from skuld.core.config import settings
from skuld.modules.attachments.models import Attachment
from skuld.modules.files.uploads import ValidatedUpload, object_key
from skuld.modules.transactions.models import Transaction

logger = logging.getLogger(__name__)


class AttachmentService:

    def __init__(self, db: AsyncSession, storage):
        self.db = db
        self.storage = storage

    async def _require_transaction(self, tenant_id: UUID, transaction_id: UUID):
        found = (await self.db.execute(
            select(Transaction.id).where(Transaction.id == transaction_id, Transaction.tenant_id == tenant_id)
        )).scalar_one_or_none()
        if found is None:
            raise NotFoundError("Transaction")

    async def _get_attachment(self, tenant_id: UUID, attachment_id: UUID) -> Attachment:
        attachment = (await self.db.execute(
            select(Attachment).where(Attachment.id == attachment_id, Attachment.tenant_id == tenant_id)
        )).scalar_one_or_none()
        if not attachment:
            raise NotFoundError("Attachment")
        return attachment

    async def upload(self, tenant_id: UUID, transaction_id: UUID, upload: ValidatedUpload) -> Attachment:
        await self._require_transaction(tenant_id, transaction_id)

        count = (await self.db.execute(
            select(func.count(Attachment.id)).where(Attachment.transaction_id == transaction_id)
        )).scalar() or 0
        if count >= settings.MAX_ATTACHMENTS_PER_TRANSACTION:
            raise ValidationError(
                f"Maximum number of attachments reached ({settings.MAX_ATTACHMENTS_PER_TRANSACTION})",
                errors={"file": "limit"},
            )

        key = object_key("attachments", transaction_id, upload.filename)
        await self.storage.put(key, upload.data, upload.content_type)

        attachment = Attachment(
            id=uuid4(),
            tenant_id=tenant_id,
            transaction_id=transaction_id,
            file_url=key,
            file_name=upload.filename,
            file_size=upload.size,
            mime_type=upload.content_type,
        )
        self.db.add(attachment)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not record attachment {key}: {e}")
            try:
                await self.storage.delete(key)
            except Exception as cleanup_error:
                logger.warning(f"Orphan object {key} left in storage: {cleanup_error}")
            raise InternalError("Could not record the attachment")

        await self.db.refresh(attachment)
        return attachment

    async def list_attachments(self, tenant_id: UUID, transaction_id: UUID) -> List[Attachment]:
        result = await self.db.execute(
            select(Attachment)
            .where(Attachment.transaction_id == transaction_id, Attachment.tenant_id == tenant_id)
            .order_by(Attachment.created_at, Attachment.id)
        )
        return list(result.scalars().all())

    async def download(self, tenant_id: UUID, attachment_id: UUID) -> tuple[Attachment, bytes]:
        attachment = await self._get_attachment(tenant_id, attachment_id)
        data = await self.storage.get(attachment.file_url)
        if data is None:
            raise NotFoundError("File")
        return attachment, data

    async def delete(self, tenant_id: UUID, attachment_id: UUID) -> dict:
        """Delete the row, then the stored file (best-effort)"""
        attachment = await self._get_attachment(tenant_id, attachment_id)
        key = attachment.file_url

        await self.db.delete(attachment)
        await self.db.commit()

        try:
            await self.storage.delete(key)
        except Exception as e:
            logger.warning(f"Could not delete object {key}: {e}")

        return {"message": "Attachment deleted"}
