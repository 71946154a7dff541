"""
Business services for the Contacts module
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from typing import Optional
from uuid import UUID
import logging

from skuld.common.exceptions import ConflictError, NotFoundError, ValidationError
from skuld.common.pagination import PageParams
from skuld.modules.contacts.models import Contact, ContactType
from skuld.modules.contacts.schemas import ContactCreate, ContactUpdate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("type", "display_name", "country", "is_individual")


class ContactService:
    """Contact management, scoped to the caller's tenant"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_contacts(
        self,
        tenant_id: UUID,
        params: PageParams,
        type: Optional[ContactType] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Contact], int]:
        conditions = [Contact.tenant_id == tenant_id]
        if type:
            conditions.append(Contact.type == type)
        if search:
            term = f"%{search}%"
            conditions.append(or_(
                Contact.display_name.ilike(term),
                Contact.legal_name.ilike(term),
                Contact.email.ilike(term),
            ))

        total = (await self.db.execute(
            select(func.count(Contact.id)).where(*conditions)
        )).scalar() or 0

        result = await self.db.execute(
            select(Contact).where(*conditions)
            .order_by(Contact.display_name)
            .offset(params.offset).limit(params.per_page)
        )
        return list(result.scalars().all()), total

    async def get_contact(self, contact_id: UUID, tenant_id: UUID) -> Contact:
        result = await self.db.execute(
            select(Contact).where(Contact.id == contact_id, Contact.tenant_id == tenant_id)
        )
        contact = result.scalar_one_or_none()
        if not contact:
            raise NotFoundError("Contact")
        return contact

    async def create_contact(self, contact_data: ContactCreate, tenant_id: UUID) -> Contact:
        values = contact_data.model_dump(exclude_none=True)
        contact = Contact(tenant_id=tenant_id, **values)
        self.db.add(contact)
        await self.db.commit()
        await self.db.refresh(contact)
        logger.info(f"Contact {contact.id} created for tenant {tenant_id}")
        return contact

    async def update_contact(self, contact_id: UUID, contact_data: ContactUpdate, tenant_id: UUID) -> Contact:
        updates = contact_data.model_dump(exclude_unset=True)
        if not updates:
            raise ValidationError("No fields to update")

        for field in REQUIRED_FIELDS:
            if field in updates and updates[field] is None:
                raise ValidationError(f"{field} cannot be empty", errors={field: "required"})

        contact = await self.get_contact(contact_id, tenant_id)
        for field, value in updates.items():
            setattr(contact, field, value)

        if contact.is_individual and contact.siren:
            await self.db.rollback()
            raise ValidationError("An individual cannot have a SIREN number", errors={"siren": "forbidden"})

        await self.db.commit()
        await self.db.refresh(contact)
        return contact

    async def delete_contact(self, contact_id: UUID, tenant_id: UUID) -> dict:
        from skuld.modules.documents.models import Document

        contact = await self.get_contact(contact_id, tenant_id)

        linked = (await self.db.execute(
            select(func.count(Document.id)).where(
                Document.tenant_id == tenant_id,
                Document.contact_id == contact_id,
            )
        )).scalar() or 0
        if linked:
            raise ConflictError(f"This contact is linked to {linked} document(s) and cannot be deleted")

        await self.db.delete(contact)
        await self.db.commit()
        return {"message": "Contact deleted"}
