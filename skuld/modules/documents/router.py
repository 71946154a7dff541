"""
Router for the Documents module (quotes, invoices, credit notes)
"""

from fastapi import APIRouter, Depends, Query, Path, Response, status
from typing import Optional
from uuid import UUID

from skuld.common.pagination import Page, PageParams, page_params, build_page
from skuld.dependencies.auth import auth_dependency
from skuld.dependencies.dbDependencies import async_db_dependency
from skuld.modules.documents.models import DocumentStatus
from skuld.modules.documents.schemas import (
    DocumentCreate, DocumentUpdate, DocumentDetail, DocumentListItem,
    PaymentResult, CancellationResult,
)
from skuld.modules.documents.service import DocumentLifecycleService
from skuld.modules.files.dependencies import object_store_dependency
from skuld.modules.pdf.dependencies import pdf_renderer_dependency
from skuld.modules.sequences.models import DocType

router = APIRouter(
    prefix="/documents",
    tags=["Documents"],
    responses={404: {"description": "Not found"}, 409: {"description": "Illegal transition"}}
)


@router.get("", response_model=Page[DocumentListItem])
async def list_documents(
    db: async_db_dependency,
    auth: auth_dependency,
    params: PageParams = Depends(page_params),
    type: Optional[DocType] = Query(None, description="QUOTE, INVOICE or CREDIT_NOTE"),
    status: Optional[DocumentStatus] = Query(None, description="DRAFT, SENT, PAID or CANCELLED"),
):
    """List documents, newest first"""
    documents, total = await DocumentLifecycleService(db).list_documents(auth.tenant_id, params, type, status)
    return build_page(DocumentListItem, documents, params, total)


@router.post("", response_model=DocumentDetail, status_code=status.HTTP_201_CREATED)
async def create_document(document_data: DocumentCreate, db: async_db_dependency, auth: auth_dependency):
    """
    Create a draft document.

    Line totals and the per-category subtotals are computed server-side.
    """
    return await DocumentLifecycleService(db).create_document(auth.tenant_id, document_data)


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(db: async_db_dependency, auth: auth_dependency, document_id: UUID = Path(...)):
    return await DocumentLifecycleService(db).get_document(auth.tenant_id, document_id)


@router.put("/{document_id}", response_model=DocumentDetail)
async def update_document(
    patch: DocumentUpdate,
    db: async_db_dependency,
    auth: auth_dependency,
    document_id: UUID = Path(...),
):
    """Edit a draft. Sending ``lines`` replaces all of them."""
    return await DocumentLifecycleService(db).update_document(auth.tenant_id, document_id, patch)


@router.post("/{document_id}/send", response_model=DocumentDetail)
async def send_document(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    renderer: pdf_renderer_dependency,
    document_id: UUID = Path(...),
):
    """Assign the legal reference, lock the document and archive its PDF"""
    service = DocumentLifecycleService(db, storage, renderer)
    return await service.send(auth.tenant_id, document_id)


@router.post("/{document_id}/pay", response_model=PaymentResult)
async def pay_document(db: async_db_dependency, auth: auth_dependency, document_id: UUID = Path(...)):
    """Mark as paid and record the income transaction"""
    return await DocumentLifecycleService(db).pay(auth.tenant_id, document_id)


@router.post("/{document_id}/cancel", response_model=CancellationResult)
async def cancel_document(db: async_db_dependency, auth: auth_dependency, document_id: UUID = Path(...)):
    """
    Cancel a document.

    - DRAFT: deleted outright
    - SENT / PAID: marked CANCELLED and a draft credit note is created
    """
    return await DocumentLifecycleService(db).cancel(auth.tenant_id, document_id)


@router.post("/{document_id}/convert", response_model=DocumentDetail, status_code=status.HTTP_201_CREATED)
async def convert_document(db: async_db_dependency, auth: auth_dependency, document_id: UUID = Path(...)):
    """Create a draft invoice from a quote"""
    return await DocumentLifecycleService(db).convert(auth.tenant_id, document_id)


@router.get("/{document_id}/pdf")
async def get_document_pdf(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    document_id: UUID = Path(...),
):
    reference, data = await DocumentLifecycleService(db, storage).get_pdf(auth.tenant_id, document_id)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{reference}.pdf"'},
    )
