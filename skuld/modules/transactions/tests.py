"""
Tests for the Transactions module (cash ledger)
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from uuid import uuid4

from skuld.modules.contacts.models import Contact
from skuld.modules.documents.models import Document
from skuld.modules.proofs.models import ProofBundle
from skuld.modules.sequences.models import DocType


# ===== FIXTURES =====

@pytest.fixture
def transaction_payload():
    def make(**overrides):
        payload = {
            "date": "2025-03-14",
            "amount": "120.00",
            "direction": "EXPENSE",
            "label": "Fournitures",
            "fiscal_category": "BIC_VENTE",
            "payment_method": "CARD",
        }
        payload.update(overrides)
        return payload
    return make


@pytest.fixture
def create_transaction(client, transaction_payload):
    async def create(**overrides):
        response = await client.post("/transactions", json=transaction_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()
    return create


@pytest.fixture
async def foreign_document(db):
    """A document owned by another tenant"""
    other_tenant = uuid4()
    owner = Contact(id=uuid4(), tenant_id=other_tenant, display_name="Ailleurs")
    document = Document(id=uuid4(), tenant_id=other_tenant, contact_id=owner.id, doc_type=DocType.INVOICE,
                        issued_date=date(2025, 3, 1))
    db.add_all([owner, document])
    await db.commit()
    return document.id


@pytest.fixture
def failing_bundle_insert():
    def refuse(mapper, connection, target):
        raise SQLAlchemyError("bundle insert refused")

    event.listen(ProofBundle, "before_insert", refuse)
    yield
    event.remove(ProofBundle, "before_insert", refuse)


# ===== CREATE =====

class TestCreateTransaction:

    async def test_create_expense(self, create_transaction):
        transaction = await create_transaction()

        assert transaction["direction"] == "EXPENSE"
        assert Decimal(transaction["amount"]) == Decimal("120.00")
        assert transaction["is_second_hand"] is False
        assert transaction["proof_bundle"] is None

    @pytest.mark.parametrize("amount", ["0", "-15.50"])
    async def test_amount_must_be_positive(self, client, transaction_payload, amount):
        response = await client.post("/transactions", json=transaction_payload(amount=amount))

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert (await client.get("/transactions")).json()["meta"]["total"] == 0

    async def test_second_hand_purchase_gets_a_bundle(self, create_transaction, contact):
        transaction = await create_transaction(
            label="Commode ancienne", is_second_hand=True, contact_id=str(contact.id)
        )

        bundle = transaction["proof_bundle"]
        assert bundle is not None
        assert bundle["transaction_id"] == transaction["id"]
        assert (bundle["has_ad"], bundle["has_payment"], bundle["has_cession"]) == (False, False, False)
        assert bundle["is_complete"] is False
        assert transaction["contact"]["display_name"] == "Atelier Dupont"

    async def test_unknown_contact(self, client, transaction_payload):
        response = await client.post("/transactions", json=transaction_payload(contact_id=str(uuid4())))
        assert response.status_code == 404

    async def test_unknown_document(self, client, transaction_payload):
        response = await client.post("/transactions", json=transaction_payload(document_id=str(uuid4())))

        assert response.status_code == 404
        assert response.json() == {"detail": "Document not found", "code": "NOT_FOUND"}

    async def test_document_of_another_tenant(self, client, transaction_payload, foreign_document):
        response = await client.post("/transactions", json=transaction_payload(document_id=str(foreign_document)))

        assert response.status_code == 404
        assert (await client.get("/transactions")).json()["meta"]["total"] == 0

    async def test_bundle_failure_leaves_no_transaction(self, client, transaction_payload, contact,
                                                         failing_bundle_insert):
        response = await client.post("/transactions", json=transaction_payload(
            is_second_hand=True, contact_id=str(contact.id)
        ))

        assert response.status_code == 500
        assert response.json() == {"detail": "Could not record the transaction", "code": "INTERNAL_ERROR"}
        assert (await client.get("/transactions")).json()["meta"]["total"] == 0


# ===== LIST / UPDATE =====

class TestListAndUpdate:

    async def test_list_filters(self, client, create_transaction):
        await create_transaction(date="2025-01-10", direction="INCOME", label="Vente")
        await create_transaction(date="2025-02-10", direction="EXPENSE", label="Achat")
        await create_transaction(date="2025-03-10", direction="INCOME", label="Prestation",
                                 fiscal_category="BIC_PRESTA")

        income = (await client.get("/transactions", params={"direction": "INCOME"})).json()
        assert [item["label"] for item in income["items"]] == ["Prestation", "Vente"]

        february = (await client.get("/transactions", params={
            "start_date": "2025-02-01", "end_date": "2025-02-28",
        })).json()
        assert [item["label"] for item in february["items"]] == ["Achat"]

        presta = (await client.get("/transactions", params={"fiscal_category": "BIC_PRESTA"})).json()
        assert presta["meta"]["total"] == 1

    async def test_update(self, client, create_transaction):
        transaction = await create_transaction()

        response = await client.put(f"/transactions/{transaction['id']}", json={
            "amount": "99.90", "notes": "Ticket perdu",
        })

        assert response.status_code == 200
        assert Decimal(response.json()["amount"]) == Decimal("99.90")
        assert response.json()["notes"] == "Ticket perdu"
        assert response.json()["label"] == "Fournitures"

    async def test_update_rejects_empty_patch(self, client, create_transaction):
        transaction = await create_transaction()
        response = await client.put(f"/transactions/{transaction['id']}", json={})
        assert response.status_code == 422

    async def test_update_rejects_clearing_required_field(self, client, create_transaction):
        transaction = await create_transaction()
        response = await client.put(f"/transactions/{transaction['id']}", json={"label": None})
        assert response.status_code == 422
        assert response.json()["errors"] == {"label": "required"}

    async def test_update_rejects_document_of_another_tenant(self, client, create_transaction, foreign_document):
        transaction = await create_transaction()

        response = await client.put(f"/transactions/{transaction['id']}", json={"document_id": str(foreign_document)})

        assert response.status_code == 404
        assert (await client.get(f"/transactions/{transaction['id']}")).json()["document_id"] is None


# ===== DELETE =====

class TestDeleteTransaction:

    async def _with_files(self, client, create_transaction, contact):
        transaction = await create_transaction(is_second_hand=True, contact_id=str(contact.id))
        bundle_id = transaction["proof_bundle"]["id"]

        await client.post("/proofs/upload", data={"bundle_id": bundle_id, "type": "SCREENSHOT_AD"},
                          files={"file": ("annonce.png", b"\x89PNG fake", "image/png")})
        await client.post("/attachments/upload", data={"transaction_id": transaction["id"]},
                          files={"file": ("ticket.pdf", b"%PDF-1.4 fake", "application/pdf")})
        return transaction

    async def test_delete_removes_row_and_files(self, client, storage, create_transaction, contact):
        transaction = await self._with_files(client, create_transaction, contact)
        assert len(storage.objects) == 2

        response = await client.delete(f"/transactions/{transaction['id']}")

        assert response.status_code == 200
        assert response.json() == {"message": "Transaction deleted"}
        assert storage.objects == {}
        assert (await client.get(f"/transactions/{transaction['id']}")).status_code == 404
        assert (await client.get(f"/proofs/bundle/{transaction['id']}")).status_code == 404

    async def test_delete_succeeds_when_storage_fails(self, client, storage, create_transaction, contact):
        transaction = await self._with_files(client, create_transaction, contact)
        storage.fail_on_delete = True

        response = await client.delete(f"/transactions/{transaction['id']}")

        assert response.status_code == 200
        assert (await client.get(f"/transactions/{transaction['id']}")).status_code == 404

    async def test_delete_unknown(self, client):
        response = await client.delete(f"/transactions/{uuid4()}")
        assert response.status_code == 404
