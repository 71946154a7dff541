"""
Router for transaction attachments (receipts)
"""

from fastapi import APIRouter, File, Form, Path, Response, UploadFile, status
from typing import List
from uuid import UUID

from skuld.core.config import settings
from skuld.dependencies.auth import auth_dependency
from skuld.dependencies.dbDependencies import async_db_dependency
from skuld.modules.attachments.schemas import AttachmentOut
from skuld.modules.attachments.service import AttachmentService
from skuld.modules.files.dependencies import object_store_dependency
from skuld.modules.files.uploads import read_upload

router = APIRouter(
    prefix="/attachments",
    tags=["Attachments"],
    responses={404: {"description": "Not found"}}
)


@router.post("/upload", response_model=AttachmentOut, status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    transaction_id: UUID = Form(...),
    file: UploadFile = File(...),
):
    """Attach a receipt to a transaction (10 per transaction at most)"""
    upload = await read_upload(file, settings.ALLOWED_FILE_TYPES, settings.MAX_FILE_SIZE)
    return await AttachmentService(db, storage).upload(auth.tenant_id, transaction_id, upload)


@router.get("/{transaction_id}", response_model=List[AttachmentOut])
async def list_attachments(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    transaction_id: UUID = Path(...),
):
    return await AttachmentService(db, storage).list_attachments(auth.tenant_id, transaction_id)


@router.get("/{attachment_id}/download")
async def download_attachment(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    attachment_id: UUID = Path(...),
):
    attachment, data = await AttachmentService(db, storage).download(auth.tenant_id, attachment_id)
    return Response(
        content=data,
        media_type=attachment.mime_type,
        headers={"Content-Disposition": f'inline; filename="{attachment.file_name}"'},
    )


@router.delete("/{attachment_id}")
async def delete_attachment(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    attachment_id: UUID = Path(...),
):
    return await AttachmentService(db, storage).delete(auth.tenant_id, attachment_id)
