"""
Shared pytest fixtures: in-memory SQLite database, in-memory object store
and an HTTP client on the ASGI app with the external collaborators overridden.
"""
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from skuld.database.database import Base, get_async_db
from skuld.dependencies.auth import AuthContext, get_auth_context
from skuld.main import app
from skuld.modules.company.models import CompanySettings, ActivityType
from skuld.modules.contacts.models import Contact, ContactType
from skuld.modules.files.dependencies import get_object_store
from skuld.modules.pdf.renderer import DocumentPdfRenderer


class InMemoryStorage:
    """Object store fake keeping blobs in a dict"""

    def __init__(self):
        self.objects = {}
        self.content_types = {}
        self.fail_on_put = False
        self.fail_on_delete = False

    async def put(self, key, data, content_type):
        if self.fail_on_put:
            raise RuntimeError("storage unavailable")
        self.objects[key] = data
        self.content_types[key] = content_type

    async def get(self, key):
        return self.objects.get(key)

    async def exists(self, key):
        return key in self.objects

    async def delete(self, key):
        if self.fail_on_delete:
            raise RuntimeError("storage unavailable")
        self.objects.pop(key, None)
        self.content_types.pop(key, None)


# ===== DATABASE =====

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ===== COLLABORATORS =====

@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def renderer():
    return DocumentPdfRenderer()


@pytest.fixture
def auth():
    tenant_id = uuid4()
    return AuthContext(user_id=tenant_id, tenant_id=tenant_id)


@pytest.fixture
def tenant_id(auth):
    return auth.tenant_id


# ===== HTTP CLIENT =====

@pytest.fixture
async def client(session_factory, storage, auth):
    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_db
    app.dependency_overrides[get_object_store] = lambda: storage
    app.dependency_overrides[get_auth_context] = lambda: auth

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===== DATA =====

@pytest.fixture
async def contact(db, tenant_id):
    contact = Contact(
        tenant_id=tenant_id,
        type=ContactType.CLIENT,
        display_name="Atelier Dupont",
        legal_name="Atelier Dupont SARL",
        email="contact@atelier-dupont.fr",
        address_line1="12 rue des Lilas",
        postal_code="69003",
        city="Lyon",
        country="FR",
        is_individual=False,
        siren="732829320",
    )
    db.add(contact)
    await db.commit()
    await db.refresh(contact)
    return contact


@pytest.fixture
async def company_settings(db, auth):
    settings_row = CompanySettings(
        tenant_id=auth.tenant_id,
        user_id=auth.user_id,
        siret="73282932000074",
        company_name="Studio Martin",
        activity_type=ActivityType.MIXED,
        address_line1="4 place Bellecour",
        postal_code="69002",
        city="Lyon",
        email="hello@studio-martin.fr",
        bank_iban="FR7630006000011234567890189",
        bank_bic="AGRIFRPP",
        activity_start_date=date(2023, 1, 1),
    )
    db.add(settings_row)
    await db.commit()
    await db.refresh(settings_row)
    return settings_row


@pytest.fixture
def line_payload():
    def make(description="Site vitrine", quantity="1", unit_price="1500.00", fiscal_category="BIC_PRESTA"):
        return {
            "description": description,
            "quantity": str(Decimal(quantity)),
            "unit": "forfait",
            "unit_price": str(Decimal(unit_price)),
            "fiscal_category": fiscal_category,
        }
    return make
