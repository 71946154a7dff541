"""
Router for second-hand purchase evidence
"""

from fastapi import APIRouter, File, Form, Path, Response, UploadFile, status
from uuid import UUID

from skuld.core.config import settings
from skuld.dependencies.auth import auth_dependency
from skuld.dependencies.dbDependencies import async_db_dependency
from skuld.modules.files.dependencies import object_store_dependency
from skuld.modules.files.uploads import read_upload
from skuld.modules.pdf.dependencies import pdf_renderer_dependency
from skuld.modules.proofs.models import ProofType
from skuld.modules.proofs.schemas import ProofOut, ProofBundleOut
from skuld.modules.proofs.service import ProofService

router = APIRouter(
    prefix="/proofs",
    tags=["Proofs"],
    responses={404: {"description": "Not found"}}
)


@router.post("/upload", response_model=ProofOut, status_code=status.HTTP_201_CREATED)
async def upload_proof(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    bundle_id: UUID = Form(...),
    type: ProofType = Form(...),
    file: UploadFile = File(...),
):
    """
    Upload an evidence file (JPEG, PNG, WebP or PDF, 5 MB max).

    SCREENSHOT_AD, PAYMENT_PROOF and CESSION_CERT tick the matching bundle flag.
    """
    upload = await read_upload(file, settings.ALLOWED_FILE_TYPES, settings.MAX_FILE_SIZE)
    return await ProofService(db, storage).upload(auth.tenant_id, bundle_id, type, upload)


@router.get("/bundle/{transaction_id}", response_model=ProofBundleOut)
async def get_bundle(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    transaction_id: UUID = Path(...),
):
    return await ProofService(db, storage).get_bundle(auth.tenant_id, transaction_id)


@router.get("/{proof_id}/download")
async def download_proof(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    proof_id: UUID = Path(...),
):
    proof, data = await ProofService(db, storage).download(auth.tenant_id, proof_id)
    return Response(
        content=data,
        media_type=proof.mime_type,
        headers={"Content-Disposition": f'inline; filename="{proof.file_name}"'},
    )


@router.post("/cession-pdf/{transaction_id}", response_model=ProofOut, status_code=status.HTTP_201_CREATED)
async def generate_cession_pdf(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    renderer: pdf_renderer_dependency,
    transaction_id: UUID = Path(...),
):
    """Generate the transfer certificate and file it as a CESSION_CERT proof"""
    return await ProofService(db, storage, renderer).generate_cession_certificate(auth.tenant_id, transaction_id)
