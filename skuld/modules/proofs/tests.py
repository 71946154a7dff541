"""
Tests for second-hand purchase evidence
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from skuld.modules.files.uploads import ValidatedUpload
from skuld.modules.proofs.models import ProofType
from skuld.modules.proofs.service import ProofService
from skuld.modules.transactions.models import TransactionDirection
from skuld.modules.transactions.schemas import TransactionCreate
from skuld.modules.transactions.service import LedgerRecorder


# ===== FIXTURES =====

@pytest.fixture
async def second_hand(client, contact):
    response = await client.post("/transactions", json={
        "date": "2025-04-02",
        "amount": "85.00",
        "direction": "EXPENSE",
        "label": "Fauteuil Louis XV",
        "fiscal_category": "BIC_VENTE",
        "payment_method": "CASH",
        "contact_id": str(contact.id),
        "is_second_hand": True,
        "notes": "Tissu a refaire",
    })
    assert response.status_code == 201, response.text
    return response.json()


async def upload(client, bundle_id, proof_type, name="preuve.png", content=b"\x89PNG data", mime="image/png"):
    return await client.post(
        "/proofs/upload",
        data={"bundle_id": str(bundle_id), "type": proof_type},
        files={"file": (name, content, mime)},
    )


# ===== UPLOAD =====

class TestUploadProof:

    async def test_flags_follow_uploaded_types(self, client, storage, second_hand):
        bundle_id = second_hand["proof_bundle"]["id"]

        response = await upload(client, bundle_id, "SCREENSHOT_AD", "annonce.png")
        assert response.status_code == 201
        proof = response.json()
        assert proof["file_url"].startswith(f"proofs/{bundle_id}/")
        assert proof["file_url"].endswith("-annonce.png")
        assert proof["file_size"] == len(b"\x89PNG data")
        assert storage.objects[proof["file_url"]] == b"\x89PNG data"

        await upload(client, bundle_id, "PAYMENT_PROOF", "recu.pdf", b"%PDF-1.4", "application/pdf")
        await upload(client, bundle_id, "OTHER", "divers.png")

        bundle = (await client.get(f"/proofs/bundle/{second_hand['id']}")).json()
        assert bundle["has_ad"] is True
        assert bundle["has_payment"] is True
        assert bundle["has_cession"] is False
        assert bundle["is_complete"] is False
        assert len(bundle["proofs"]) == 3

        await upload(client, bundle_id, "CESSION_CERT", "cession.pdf", b"%PDF-1.4", "application/pdf")
        bundle = (await client.get(f"/proofs/bundle/{second_hand['id']}")).json()
        assert bundle["is_complete"] is True

    async def test_rejected_mime_type(self, client, storage, second_hand):
        response = await upload(client, second_hand["proof_bundle"]["id"], "OTHER",
                                "notes.txt", b"hello", "text/plain")

        assert response.status_code == 422
        assert response.json()["errors"] == {"file": "type"}
        assert storage.objects == {}

    async def test_unknown_proof_type(self, client, second_hand):
        response = await upload(client, second_hand["proof_bundle"]["id"], "SELFIE")
        assert response.status_code == 422

    async def test_unknown_bundle(self, client):
        response = await upload(client, uuid4(), "OTHER")
        assert response.status_code == 404
        assert response.json()["detail"] == "Proof bundle not found"

    async def test_storage_failure_records_nothing(self, db, tenant_id, storage, contact):
        transaction = await LedgerRecorder(db).create_transaction(tenant_id, TransactionCreate(
            date=date(2025, 4, 2), amount=Decimal("30"), direction=TransactionDirection.EXPENSE,
            label="Miroir", contact_id=contact.id, is_second_hand=True,
        ))
        storage.fail_on_put = True
        service = ProofService(db, storage)

        with pytest.raises(RuntimeError):
            await service.upload(tenant_id, transaction.proof_bundle.id, ProofType.SCREENSHOT_AD,
                                 ValidatedUpload("annonce.png", "image/png", b"\x89PNG data"))

        bundle = await service.get_bundle(tenant_id, transaction.id)
        assert bundle.proofs == []
        assert bundle.has_ad is False


# ===== DOWNLOAD =====

class TestDownloadProof:

    async def test_download(self, client, second_hand):
        proof = (await upload(client, second_hand["proof_bundle"]["id"], "SCREENSHOT_AD", "annonce.png")).json()

        response = await client.get(f"/proofs/{proof['id']}/download")

        assert response.status_code == 200
        assert response.content == b"\x89PNG data"
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-disposition"] == 'inline; filename="annonce.png"'

    async def test_download_missing_blob(self, client, storage, second_hand):
        proof = (await upload(client, second_hand["proof_bundle"]["id"], "OTHER")).json()
        storage.objects.clear()

        response = await client.get(f"/proofs/{proof['id']}/download")

        assert response.status_code == 404
        assert response.json()["detail"] == "File not found"


# ===== CESSION CERTIFICATE =====

class TestCessionCertificate:

    async def test_generate(self, client, storage, company_settings, second_hand):
        response = await client.post(f"/proofs/cession-pdf/{second_hand['id']}")

        assert response.status_code == 201
        proof = response.json()
        assert proof["type"] == "CESSION_CERT"
        assert proof["file_name"] == "certificat-cession-2025-04-02.pdf"
        assert proof["mime_type"] == "application/pdf"
        assert storage.objects[proof["file_url"]].startswith(b"%PDF")

        bundle = (await client.get(f"/proofs/bundle/{second_hand['id']}")).json()
        assert bundle["has_cession"] is True

    async def test_requires_second_hand(self, client, company_settings):
        transaction = (await client.post("/transactions", json={
            "date": "2025-04-02", "amount": "10", "direction": "EXPENSE", "label": "Papier",
        })).json()

        response = await client.post(f"/proofs/cession-pdf/{transaction['id']}")

        assert response.status_code == 409

    async def test_requires_settings(self, client, second_hand):
        response = await client.post(f"/proofs/cession-pdf/{second_hand['id']}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Settings not found"

    async def test_requires_seller(self, client, company_settings):
        transaction = (await client.post("/transactions", json={
            "date": "2025-04-02", "amount": "40", "direction": "EXPENSE",
            "label": "Lampe", "is_second_hand": True,
        })).json()

        response = await client.post(f"/proofs/cession-pdf/{transaction['id']}")

        assert response.status_code == 422
        assert response.json()["detail"] == "The seller contact is required"
