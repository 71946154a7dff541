"""
Company profile (settings) of a tenant
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fastapi.encoders import jsonable_encoder
from datetime import datetime, timezone
from uuid import UUID
import logging

from skuld.common.enums import PaymentMethod
from skuld.common.exceptions import ConflictError, NotFoundError, ValidationError
from skuld.dependencies.auth import AuthContext
from skuld.modules.attachments.models import Attachment
from skuld.modules.company.models import (
    CompanySettings, DEFAULT_VAT_EXEMPT_TEXT, DEFAULT_PAYMENT_TERMS, DeclarationFrequency
)
from skuld.modules.company.schemas import SettingsCreate, SettingsUpdate
from skuld.modules.contacts.models import Contact
from skuld.modules.documents.models import Document, DocumentLine
from skuld.modules.files.uploads import ValidatedUpload
from skuld.modules.proofs.models import Proof, ProofBundle
from skuld.modules.sequences.models import Sequence
from skuld.modules.transactions.models import Transaction

logger = logging.getLogger(__name__)

SETUP_DEFAULTS = {
    "vat_exempt_text": DEFAULT_VAT_EXEMPT_TEXT,
    "declaration_frequency": DeclarationFrequency.MONTHLY,
    "default_payment_terms": DEFAULT_PAYMENT_TERMS,
    "default_payment_method": PaymentMethod.BANK_TRANSFER,
}

REQUIRED_FIELDS = ("siret", "company_name", "activity_type", "address_line1", "postal_code", "city", "email")


def _row_to_dict(row) -> dict:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


class CompanyService:

    def __init__(self, db: AsyncSession, storage=None):
        self.db = db
        self.storage = storage

    async def _find(self, tenant_id: UUID):
        result = await self.db.execute(
            select(CompanySettings).where(CompanySettings.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_settings(self, tenant_id: UUID) -> CompanySettings:
        settings_row = await self._find(tenant_id)
        if not settings_row:
            raise NotFoundError("Settings")
        return settings_row

    async def setup(self, auth: AuthContext, settings_data: SettingsCreate) -> CompanySettings:
        """Initial configuration, allowed once per tenant"""
        if await self._find(auth.tenant_id):
            raise ConflictError("This instance is already configured. Use PUT /settings to change it.")

        values = settings_data.model_dump()
        for field, default in SETUP_DEFAULTS.items():
            if values.get(field) is None:
                values[field] = default

        settings_row = CompanySettings(tenant_id=auth.tenant_id, user_id=auth.user_id, **values)
        self.db.add(settings_row)
        await self.db.commit()
        await self.db.refresh(settings_row)

        logger.info(f"Tenant {auth.tenant_id} configured ({settings_row.company_name})")
        return settings_row

    async def update_settings(self, tenant_id: UUID, settings_data: SettingsUpdate) -> CompanySettings:
        updates = settings_data.model_dump(exclude_unset=True)
        if not updates:
            raise ValidationError("No fields to update")
        for field in REQUIRED_FIELDS:
            if field in updates and updates[field] is None:
                raise ValidationError(f"{field} cannot be empty", errors={field: "required"})

        settings_row = await self.get_settings(tenant_id)
        for field, value in updates.items():
            if value is None and field in SETUP_DEFAULTS:
                value = SETUP_DEFAULTS[field]
            setattr(settings_row, field, value)

        await self.db.commit()
        await self.db.refresh(settings_row)
        return settings_row

    async def upload_logo(self, tenant_id: UUID, upload: ValidatedUpload) -> CompanySettings:
        settings_row = await self.get_settings(tenant_id)

        key = f"logos/{tenant_id}/{upload.filename}"
        await self.storage.put(key, upload.data, upload.content_type)

        settings_row.logo_url = key
        await self.db.commit()
        await self.db.refresh(settings_row)
        logger.info(f"Logo stored at {key}")
        return settings_row

    async def export_data(self, tenant_id: UUID) -> dict:
        """Full dump of the tenant's data as JSON-ready values"""

        async def rows(model):
            result = await self.db.execute(select(model).where(model.tenant_id == tenant_id))
            return [_row_to_dict(row) for row in result.scalars().all()]

        settings_row = await self._find(tenant_id)
        documents = await rows(Document)
        document_ids = [document["id"] for document in documents]

        lines = []
        if document_ids:
            result = await self.db.execute(
                select(DocumentLine)
                .where(DocumentLine.document_id.in_(document_ids))
                .order_by(DocumentLine.document_id, DocumentLine.position)
            )
            lines = [_row_to_dict(line) for line in result.scalars().all()]

        return jsonable_encoder({
            "exported_at": datetime.now(timezone.utc),
            "settings": _row_to_dict(settings_row) if settings_row else None,
            "contacts": await rows(Contact),
            "documents": documents,
            "document_lines": lines,
            "sequences": await rows(Sequence),
            "transactions": await rows(Transaction),
            "proof_bundles": await rows(ProofBundle),
            "proofs": await rows(Proof),
            "attachments": await rows(Attachment),
        })
