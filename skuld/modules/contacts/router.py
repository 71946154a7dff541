"""
Router for the Contacts module
"""

from fastapi import APIRouter, Depends, Query, Path, status
from typing import Optional
from uuid import UUID

from skuld.common.pagination import Page, PageParams, page_params, build_page
from skuld.dependencies.auth import auth_dependency
from skuld.dependencies.dbDependencies import async_db_dependency
from skuld.modules.contacts.models import ContactType
from skuld.modules.contacts.schemas import ContactCreate, ContactUpdate, ContactOut
from skuld.modules.contacts.service import ContactService

router = APIRouter(
    prefix="/contacts",
    tags=["Contacts"],
    responses={404: {"description": "Not found"}}
)


@router.get("", response_model=Page[ContactOut])
async def list_contacts(
    db: async_db_dependency,
    auth: auth_dependency,
    params: PageParams = Depends(page_params),
    type: Optional[ContactType] = Query(None, description="CLIENT, SUPPLIER or BOTH"),
    search: Optional[str] = Query(None, description="Search on names and email"),
):
    """List contacts ordered by display name"""
    contacts, total = await ContactService(db).list_contacts(auth.tenant_id, params, type, search)
    return build_page(ContactOut, contacts, params, total)


@router.post("", response_model=ContactOut, status_code=status.HTTP_201_CREATED)
async def create_contact(contact_data: ContactCreate, db: async_db_dependency, auth: auth_dependency):
    return await ContactService(db).create_contact(contact_data, auth.tenant_id)


@router.get("/{contact_id}", response_model=ContactOut)
async def get_contact(db: async_db_dependency, auth: auth_dependency, contact_id: UUID = Path(...)):
    return await ContactService(db).get_contact(contact_id, auth.tenant_id)


@router.put("/{contact_id}", response_model=ContactOut)
async def update_contact(
    contact_data: ContactUpdate,
    db: async_db_dependency,
    auth: auth_dependency,
    contact_id: UUID = Path(...),
):
    """Partial update: omitted fields keep their value"""
    return await ContactService(db).update_contact(contact_id, contact_data, auth.tenant_id)


@router.delete("/{contact_id}")
async def delete_contact(db: async_db_dependency, auth: auth_dependency, contact_id: UUID = Path(...)):
    """Delete a contact. Contacts referenced by documents are kept."""
    return await ContactService(db).delete_contact(contact_id, auth.tenant_id)
