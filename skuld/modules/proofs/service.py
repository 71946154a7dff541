"""
Evidence files of second-hand purchases
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from uuid import UUID, uuid4
import asyncio
import logging

from skuld.common.exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from skuld.modules.company.models import CompanySettings
from skuld.modules.files.uploads import ValidatedUpload, object_key
from skuld.modules.proofs.models import Proof, ProofBundle, ProofType, PROOF_FLAGS
from skuld.modules.transactions.models import Transaction

logger = logging.getLogger(__name__)


class ProofService:

    def __init__(self, db: AsyncSession, storage, renderer=None):
        self.db = db
        self.storage = storage
        self.renderer = renderer

    async def _get_bundle(self, tenant_id: UUID, bundle_id: UUID) -> ProofBundle:
        bundle = (await self.db.execute(
            select(ProofBundle).where(ProofBundle.id == bundle_id, ProofBundle.tenant_id == tenant_id)
        )).scalar_one_or_none()
        if not bundle:
            raise NotFoundError("Proof bundle")
        return bundle

    async def get_bundle(self, tenant_id: UUID, transaction_id: UUID) -> ProofBundle:
        bundle = (await self.db.execute(
            select(ProofBundle)
            .where(ProofBundle.transaction_id == transaction_id, ProofBundle.tenant_id == tenant_id)
            .options(selectinload(ProofBundle.proofs))
            .execution_options(populate_existing=True)
        )).scalar_one_or_none()
        if not bundle:
            raise NotFoundError("Proof bundle")
        return bundle

    async def upload(self, tenant_id: UUID, bundle_id: UUID, proof_type: ProofType, upload: ValidatedUpload) -> Proof:
        """Store the file, record it and raise the matching bundle flag"""
        bundle = await self._get_bundle(tenant_id, bundle_id)
        return await self._store_proof(tenant_id, bundle, proof_type, upload)

    async def _store_proof(self, tenant_id: UUID, bundle: ProofBundle, proof_type: ProofType,
                           upload: ValidatedUpload) -> Proof:
        key = object_key("proofs", bundle.id, upload.filename)
        await self.storage.put(key, upload.data, upload.content_type)

        proof = Proof(
            id=uuid4(),
            tenant_id=tenant_id,
            bundle_id=bundle.id,
            type=proof_type,
            file_url=key,
            file_name=upload.filename,
            file_size=upload.size,
            mime_type=upload.content_type,
        )
        self.db.add(proof)
        flag = PROOF_FLAGS.get(proof_type)
        if flag:
            setattr(bundle, flag, True)

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not record proof {key}: {e}")
            try:
                await self.storage.delete(key)
            except Exception as cleanup_error:
                logger.warning(f"Orphan object {key} left in storage: {cleanup_error}")
            raise InternalError("Could not record the proof")

        await self.db.refresh(proof)
        logger.info(f"Proof {proof.id} ({proof_type.value}) added to bundle {bundle.id}")
        return proof

    async def download(self, tenant_id: UUID, proof_id: UUID) -> tuple[Proof, bytes]:
        proof = (await self.db.execute(
            select(Proof).where(Proof.id == proof_id, Proof.tenant_id == tenant_id)
        )).scalar_one_or_none()
        if not proof:
            raise NotFoundError("Proof")

        data = await self.storage.get(proof.file_url)
        if data is None:
            raise NotFoundError("File")
        return proof, data

    async def generate_cession_certificate(self, tenant_id: UUID, transaction_id: UUID) -> Proof:
        """Render the transfer certificate of a second-hand purchase and file it in the bundle"""
        transaction = (await self.db.execute(
            select(Transaction)
            .where(Transaction.id == transaction_id, Transaction.tenant_id == tenant_id)
            .options(selectinload(Transaction.contact), selectinload(Transaction.proof_bundle))
        )).scalar_one_or_none()
        if not transaction:
            raise NotFoundError("Transaction")

        settings_row = (await self.db.execute(
            select(CompanySettings).where(CompanySettings.tenant_id == tenant_id)
        )).scalar_one_or_none()
        if not settings_row:
            raise NotFoundError("Settings")

        if not transaction.is_second_hand:
            raise ConflictError("This transaction is not a second-hand purchase")
        if transaction.proof_bundle is None:
            raise NotFoundError("Proof bundle")

        if transaction.contact is None:
            raise ValidationError("The seller contact is required", errors={"contact_id": "required"})

        pdf_bytes = await asyncio.to_thread(
            self.renderer.render_cession_certificate, settings_row, transaction, transaction.contact
        )
        upload = ValidatedUpload(
            filename=f"certificat-cession-{transaction.date.isoformat()}.pdf",
            content_type="application/pdf",
            data=pdf_bytes,
        )
        return await self._store_proof(tenant_id, transaction.proof_bundle, ProofType.CESSION_CERT, upload)
