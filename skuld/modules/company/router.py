"""
Routers for the company profile: initial setup and settings
"""

from fastapi import APIRouter, File, UploadFile, status

from skuld.core.config import settings
from skuld.dependencies.auth import auth_dependency
from skuld.dependencies.dbDependencies import async_db_dependency
from skuld.modules.company.schemas import SettingsCreate, SettingsUpdate, SettingsOut
from skuld.modules.company.service import CompanyService
from skuld.modules.files.dependencies import object_store_dependency
from skuld.modules.files.uploads import read_upload

setup_router = APIRouter(prefix="/setup", tags=["Setup"])

settings_router = APIRouter(
    prefix="/settings",
    tags=["Settings"],
    responses={404: {"description": "Instance not configured"}}
)


@setup_router.post("", response_model=SettingsOut, status_code=status.HTTP_201_CREATED)
async def setup_company(settings_data: SettingsCreate, db: async_db_dependency, auth: auth_dependency):
    """
    Initial configuration of the instance (company profile).

    Can only be done once; use PUT /settings afterwards.
    """
    return await CompanyService(db).setup(auth, settings_data)


@settings_router.get("", response_model=SettingsOut)
async def get_settings(db: async_db_dependency, auth: auth_dependency):
    return await CompanyService(db).get_settings(auth.tenant_id)


@settings_router.put("", response_model=SettingsOut)
async def update_settings(settings_data: SettingsUpdate, db: async_db_dependency, auth: auth_dependency):
    return await CompanyService(db).update_settings(auth.tenant_id, settings_data)


@settings_router.post("/logo", response_model=SettingsOut)
async def upload_logo(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    file: UploadFile = File(...),
):
    """Upload the logo printed on documents (JPEG, PNG or WebP, 2 MB max)"""
    upload = await read_upload(file, settings.ALLOWED_LOGO_TYPES, settings.MAX_LOGO_SIZE)
    return await CompanyService(db, storage).upload_logo(auth.tenant_id, upload)


@settings_router.get("/export")
async def export_data(db: async_db_dependency, auth: auth_dependency):
    """Full JSON export of the account data"""
    return await CompanyService(db).export_data(auth.tenant_id)
