"""
Tests for transaction attachments
"""

import pytest
from uuid import uuid4

from skuld.core.config import settings


# ===== FIXTURES =====

@pytest.fixture
async def transaction(client):
    response = await client.post("/transactions", json={
        "date": "2025-05-20", "amount": "42.00", "direction": "EXPENSE", "label": "Peinture",
    })
    assert response.status_code == 201, response.text
    return response.json()


async def attach(client, transaction_id, name="ticket.jpg", content=b"\xff\xd8 jpeg", mime="image/jpeg"):
    return await client.post(
        "/attachments/upload",
        data={"transaction_id": str(transaction_id)},
        files={"file": (name, content, mime)},
    )


# ===== TESTS =====

class TestAttachments:

    async def test_upload_and_list(self, client, storage, transaction):
        response = await attach(client, transaction["id"])

        assert response.status_code == 201
        attachment = response.json()
        assert attachment["transaction_id"] == transaction["id"]
        assert attachment["file_url"].startswith(f"attachments/{transaction['id']}/")
        assert storage.content_types[attachment["file_url"]] == "image/jpeg"

        await attach(client, transaction["id"], "facture.pdf", b"%PDF-1.4", "application/pdf")
        listed = (await client.get(f"/attachments/{transaction['id']}")).json()
        assert sorted(item["file_name"] for item in listed) == ["facture.pdf", "ticket.jpg"]

    async def test_limit_per_transaction(self, client, storage, transaction):
        for index in range(settings.MAX_ATTACHMENTS_PER_TRANSACTION):
            response = await attach(client, transaction["id"], f"ticket-{index}.jpg")
            assert response.status_code == 201

        response = await attach(client, transaction["id"], "one-too-many.jpg")

        assert response.status_code == 422
        assert response.json()["errors"] == {"file": "limit"}
        assert len(storage.objects) == settings.MAX_ATTACHMENTS_PER_TRANSACTION

    async def test_file_too_large(self, client, transaction):
        response = await attach(client, transaction["id"], content=b"0" * (settings.MAX_FILE_SIZE + 1))
        assert response.status_code == 422
        assert response.json()["errors"] == {"file": "size"}

    async def test_unknown_transaction(self, client, storage):
        response = await attach(client, uuid4())
        assert response.status_code == 404
        assert storage.objects == {}

    async def test_download(self, client, transaction):
        attachment = (await attach(client, transaction["id"])).json()

        response = await client.get(f"/attachments/{attachment['id']}/download")

        assert response.status_code == 200
        assert response.content == b"\xff\xd8 jpeg"
        assert response.headers["content-disposition"] == 'inline; filename="ticket.jpg"'

    async def test_delete(self, client, storage, transaction):
        attachment = (await attach(client, transaction["id"])).json()

        response = await client.delete(f"/attachments/{attachment['id']}")

        assert response.status_code == 200
        assert response.json() == {"message": "Attachment deleted"}
        assert storage.objects == {}
        assert (await client.get(f"/attachments/{transaction['id']}")).json() == []

    async def test_delete_keeps_going_when_storage_fails(self, client, storage, transaction):
        attachment = (await attach(client, transaction["id"])).json()
        storage.fail_on_delete = True

        response = await client.delete(f"/attachments/{attachment['id']}")

        assert response.status_code == 200
        assert (await client.get(f"/attachments/{attachment['id']}/download")).status_code == 404
