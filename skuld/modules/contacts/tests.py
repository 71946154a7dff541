"""
Tests for the Contacts module
"""

import pytest
from uuid import uuid4


# ===== FIXTURES =====

@pytest.fixture
def contact_payload():
    def make(**overrides):
        payload = {
            "type": "SUPPLIER",
            "display_name": "Brocante du Rhone",
            "email": "brocante@example.fr",
            "postal_code": "69007",
            "city": "Lyon",
            "country": "fr",
        }
        payload.update(overrides)
        return payload
    return make


# ===== CREATE =====

class TestCreateContact:

    async def test_create(self, client, contact_payload):
        response = await client.post("/contacts", json=contact_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["type"] == "SUPPLIER"
        assert body["country"] == "FR"
        assert body["is_individual"] is False

    async def test_defaults(self, client):
        response = await client.post("/contacts", json={"display_name": "Mme Leroy"})

        body = response.json()
        assert body["type"] == "CLIENT"
        assert body["country"] == "FR"

    async def test_individual_cannot_have_siren(self, client, contact_payload):
        response = await client.post("/contacts", json=contact_payload(is_individual=True, siren="732829320"))
        assert response.status_code == 422

    @pytest.mark.parametrize("field,value", [
        ("siren", "12345"),
        ("email", "not-an-email"),
        ("display_name", ""),
    ])
    async def test_invalid_fields(self, client, contact_payload, field, value):
        response = await client.post("/contacts", json=contact_payload(**{field: value}))
        assert response.status_code == 422


# ===== READ / UPDATE =====

class TestContacts:

    async def test_list_search_and_filter(self, client, contact, contact_payload):
        await client.post("/contacts", json=contact_payload())

        suppliers = (await client.get("/contacts", params={"type": "SUPPLIER"})).json()
        assert [item["display_name"] for item in suppliers["items"]] == ["Brocante du Rhone"]

        found = (await client.get("/contacts", params={"search": "dupont"})).json()
        assert [item["display_name"] for item in found["items"]] == ["Atelier Dupont"]

        everyone = (await client.get("/contacts")).json()
        assert everyone["meta"]["total"] == 2
        assert [item["display_name"] for item in everyone["items"]] == ["Atelier Dupont", "Brocante du Rhone"]

    async def test_other_tenant_is_invisible(self, client, db):
        from skuld.modules.contacts.models import Contact

        db.add(Contact(tenant_id=uuid4(), display_name="Ailleurs"))
        await db.commit()

        assert (await client.get("/contacts")).json()["meta"]["total"] == 0

    async def test_update(self, client, contact):
        response = await client.put(f"/contacts/{contact.id}", json={"phone": "0478000000"})

        assert response.status_code == 200
        assert response.json()["phone"] == "0478000000"
        assert response.json()["display_name"] == "Atelier Dupont"

    async def test_update_to_individual_with_siren(self, client, contact):
        response = await client.put(f"/contacts/{contact.id}", json={"is_individual": True})

        assert response.status_code == 422
        assert response.json()["errors"] == {"siren": "forbidden"}
        assert (await client.get(f"/contacts/{contact.id}")).json()["is_individual"] is False

    async def test_update_empty_patch(self, client, contact):
        response = await client.put(f"/contacts/{contact.id}", json={})
        assert response.status_code == 422

    @pytest.mark.parametrize("field", ["display_name", "type", "country", "is_individual"])
    async def test_update_rejects_null_required_field(self, client, contact, field):
        response = await client.put(f"/contacts/{contact.id}", json={field: None})

        assert response.status_code == 422
        assert response.json()["errors"] == {field: "required"}
        assert (await client.get(f"/contacts/{contact.id}")).json()["display_name"] == "Atelier Dupont"

    async def test_unknown_contact(self, client):
        assert (await client.get(f"/contacts/{uuid4()}")).status_code == 404


# ===== DELETE =====

class TestDeleteContact:

    async def test_delete(self, client, contact):
        response = await client.delete(f"/contacts/{contact.id}")

        assert response.status_code == 200
        assert (await client.get(f"/contacts/{contact.id}")).status_code == 404

    async def test_delete_blocked_by_documents(self, client, contact, line_payload):
        await client.post("/documents", json={
            "contact_id": str(contact.id), "doc_type": "QUOTE", "lines": [line_payload()],
        })

        response = await client.delete(f"/contacts/{contact.id}")

        assert response.status_code == 409
        assert response.json()["detail"] == "This contact is linked to 1 document(s) and cannot be deleted"
