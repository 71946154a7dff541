"""
Tests for the company profile: setup, settings, logo and data export
"""

import pytest

from skuld.modules.company.models import DEFAULT_VAT_EXEMPT_TEXT


# ===== FIXTURES =====

@pytest.fixture
def setup_payload():
    return {
        "siret": "732 829 320 00074",
        "company_name": "Studio Martin",
        "activity_type": "MIXED",
        "address_line1": "4 place Bellecour",
        "postal_code": "69002",
        "city": "Lyon",
        "email": "hello@studio-martin.fr",
        "bank_iban": "fr76 3000 6000 0112 3456 7890 189",
        "bank_bic": "agrifrpp",
    }


@pytest.fixture
async def configured(client, setup_payload):
    response = await client.post("/setup", json=setup_payload)
    assert response.status_code == 201, response.text
    return response.json()


# ===== SETUP =====

class TestSetup:

    async def test_setup_applies_defaults(self, configured):
        assert configured["siret"] == "73282932000074"
        assert configured["bank_iban"] == "FR7630006000011234567890189"
        assert configured["bank_bic"] == "AGRIFRPP"
        assert configured["vat_exempt_text"] == DEFAULT_VAT_EXEMPT_TEXT
        assert configured["declaration_frequency"] == "MONTHLY"
        assert configured["default_payment_terms"] == 30
        assert configured["default_payment_method"] == "BANK_TRANSFER"

    async def test_setup_only_once(self, client, configured, setup_payload):
        response = await client.post("/setup", json=setup_payload)
        assert response.status_code == 409

    @pytest.mark.parametrize("field,value", [
        ("siret", "1234"),
        ("postal_code", "6900"),
        ("bank_iban", "not an iban"),
        ("email", "nope"),
    ])
    async def test_setup_rejects_invalid_fields(self, client, setup_payload, field, value):
        setup_payload[field] = value
        response = await client.post("/setup", json=setup_payload)
        assert response.status_code == 422

    async def test_settings_before_setup(self, client):
        response = await client.get("/settings")
        assert response.status_code == 404
        assert response.json()["detail"] == "Settings not found"


# ===== SETTINGS =====

class TestUpdateSettings:

    async def test_partial_update(self, client, configured):
        response = await client.put("/settings", json={"phone": "0601020304", "default_payment_terms": 45})

        assert response.status_code == 200
        body = response.json()
        assert body["phone"] == "0601020304"
        assert body["default_payment_terms"] == 45
        assert body["company_name"] == "Studio Martin"

    async def test_empty_patch(self, client, configured):
        response = await client.put("/settings", json={})
        assert response.status_code == 422

    async def test_clearing_required_field(self, client, configured):
        response = await client.put("/settings", json={"company_name": None})
        assert response.status_code == 422
        assert response.json()["errors"] == {"company_name": "required"}

    async def test_clearing_defaulted_field_restores_default(self, client, configured):
        await client.put("/settings", json={"vat_exempt_text": "Autre mention"})

        response = await client.put("/settings", json={"vat_exempt_text": None})

        assert response.json()["vat_exempt_text"] == DEFAULT_VAT_EXEMPT_TEXT

    async def test_clearing_iban(self, client, configured):
        response = await client.put("/settings", json={"bank_iban": ""})
        assert response.json()["bank_iban"] is None


# ===== LOGO =====

class TestLogo:

    async def test_upload_logo(self, client, storage, configured, auth):
        response = await client.post("/settings/logo", files={"file": ("logo.png", b"\x89PNG logo", "image/png")})

        assert response.status_code == 200
        key = f"logos/{auth.tenant_id}/logo.png"
        assert response.json()["logo_url"] == key
        assert storage.objects[key] == b"\x89PNG logo"

    async def test_logo_type(self, client, configured):
        response = await client.post("/settings/logo", files={"file": ("logo.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 422

    async def test_logo_requires_setup(self, client):
        response = await client.post("/settings/logo", files={"file": ("logo.png", b"\x89PNG", "image/png")})
        assert response.status_code == 404


# ===== EXPORT =====

class TestExport:

    async def test_export_contains_account_data(self, client, configured, contact, line_payload):
        document = (await client.post("/documents", json={
            "contact_id": str(contact.id), "doc_type": "INVOICE", "lines": [line_payload(), line_payload()],
        })).json()
        await client.post(f"/documents/{document['id']}/send")
        await client.post("/transactions", json={
            "date": "2025-06-01", "amount": "55", "direction": "EXPENSE", "label": "Train",
            "is_second_hand": True,
        })

        response = await client.get("/settings/export")

        assert response.status_code == 200
        body = response.json()
        assert body["settings"]["company_name"] == "Studio Martin"
        assert [item["display_name"] for item in body["contacts"]] == ["Atelier Dupont"]
        assert [item["id"] for item in body["documents"]] == [document["id"]]
        assert len(body["document_lines"]) == 2
        assert body["sequences"][0]["current_val"] == 1
        assert len(body["transactions"]) == 1
        assert len(body["proof_bundles"]) == 1
        assert body["proofs"] == []
        assert body["attachments"] == []
        assert "exported_at" in body

    async def test_export_without_settings(self, client):
        body = (await client.get("/settings/export")).json()
        assert body["settings"] is None
        assert body["documents"] == []
