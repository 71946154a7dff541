"""
Ledger recorder: cash transactions and their evidence bundles
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from decimal import Decimal
from uuid import UUID, uuid4
import logging

from skuld.common.exceptions import InternalError, NotFoundError, ValidationError
from skuld.common.pagination import PageParams
from skuld.modules.contacts.models import Contact
from skuld.modules.documents.models import Document
from skuld.modules.files.storage import delete_objects
from skuld.modules.proofs.models import ProofBundle
from skuld.modules.transactions.models import Transaction
from skuld.modules.transactions.schemas import TransactionCreate, TransactionUpdate, TransactionFilters

logger = logging.getLogger(__name__)


class LedgerRecorder:
    """Transactions of one tenant"""

    def __init__(self, db: AsyncSession, storage=None):
        self.db = db
        self.storage = storage

    async def list_transactions(self, tenant_id: UUID, filters: TransactionFilters, params: PageParams):
        conditions = [Transaction.tenant_id == tenant_id]
        if filters.direction:
            conditions.append(Transaction.direction == filters.direction)
        if filters.fiscal_category:
            conditions.append(Transaction.fiscal_category == filters.fiscal_category)
        if filters.start_date:
            conditions.append(Transaction.date >= filters.start_date)
        if filters.end_date:
            conditions.append(Transaction.date <= filters.end_date)

        total = (await self.db.execute(
            select(func.count(Transaction.id)).where(*conditions)
        )).scalar() or 0

        result = await self.db.execute(
            select(Transaction).where(*conditions)
            .options(selectinload(Transaction.contact), selectinload(Transaction.proof_bundle))
            .order_by(Transaction.date.desc(), Transaction.created_at.desc())
            .offset(params.offset).limit(params.per_page)
        )
        return list(result.scalars().all()), total

    async def get_transaction(self, tenant_id: UUID, transaction_id: UUID) -> Transaction:
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.id == transaction_id, Transaction.tenant_id == tenant_id)
            .options(
                selectinload(Transaction.contact),
                selectinload(Transaction.proof_bundle).selectinload(ProofBundle.proofs),
                selectinload(Transaction.attachments),
            )
            .execution_options(populate_existing=True)
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise NotFoundError("Transaction")
        return transaction

    async def _require_contact(self, tenant_id: UUID, contact_id):
        if contact_id is None:
            return
        found = (await self.db.execute(
            select(Contact.id).where(Contact.id == contact_id, Contact.tenant_id == tenant_id)
        )).scalar_one_or_none()
        if found is None:
            raise NotFoundError("Contact")

    async def _require_document(self, tenant_id: UUID, document_id):
        if document_id is None:
            return
        found = (await self.db.execute(
            select(Document.id).where(Document.id == document_id, Document.tenant_id == tenant_id)
        )).scalar_one_or_none()
        if found is None:
            raise NotFoundError("Document")

    async def create_transaction(self, tenant_id: UUID, transaction_data: TransactionCreate) -> Transaction:
        """
        Record a transaction.

        A second-hand purchase gets its empty proof bundle in the same
        database transaction: both rows are written or neither is.
        """
        if transaction_data.amount <= Decimal("0"):
            raise ValidationError("Amount must be positive", errors={"amount": "must be > 0"})
        await self._require_contact(tenant_id, transaction_data.contact_id)
        await self._require_document(tenant_id, transaction_data.document_id)

        transaction = Transaction(id=uuid4(), tenant_id=tenant_id, **transaction_data.model_dump())
        self.db.add(transaction)
        if transaction.is_second_hand:
            self.db.add(ProofBundle(id=uuid4(), tenant_id=tenant_id, transaction_id=transaction.id))

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not record transaction: {e}", exc_info=True)
            raise InternalError("Could not record the transaction")

        logger.info(
            f"Transaction {transaction.id} recorded ({transaction.direction.value} {transaction.amount})"
            + (" with proof bundle" if transaction.is_second_hand else "")
        )
        return await self.get_transaction(tenant_id, transaction.id)

    async def update_transaction(self, tenant_id: UUID, transaction_id: UUID, patch: TransactionUpdate) -> Transaction:
        updates = patch.model_dump(exclude_unset=True)
        if not updates:
            raise ValidationError("No fields to update")
        for field in ("date", "amount", "direction", "label"):
            if field in updates and updates[field] is None:
                raise ValidationError(f"{field} cannot be empty", errors={field: "required"})
        await self._require_contact(tenant_id, updates.get("contact_id"))
        await self._require_document(tenant_id, updates.get("document_id"))

        transaction = await self.get_transaction(tenant_id, transaction_id)
        for field, value in updates.items():
            setattr(transaction, field, value)

        await self.db.commit()
        return await self.get_transaction(tenant_id, transaction_id)

    async def delete_transaction(self, tenant_id: UUID, transaction_id: UUID) -> dict:
        """Delete the row; stored proofs and attachments are removed best-effort first"""
        transaction = await self.get_transaction(tenant_id, transaction_id)

        keys = [attachment.file_url for attachment in transaction.attachments]
        if transaction.proof_bundle:
            keys.extend(proof.file_url for proof in transaction.proof_bundle.proofs)

        if keys and self.storage is not None:
            failures = await delete_objects(self.storage, keys)
            if failures:
                logger.warning(f"{failures} file(s) of transaction {transaction_id} left in storage")

        await self.db.delete(transaction)
        await self.db.commit()
        logger.info(f"Transaction {transaction_id} deleted")
        return {"message": "Transaction deleted"}
