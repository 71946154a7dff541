"""
Tests for the Documents module

Covers:
- Draft creation and server-side totals
- Immutability of non-draft documents
- Sequential numbering on send, including lost races and numbering failures
- Payment, cancellation (credit notes) and quote conversion
- PDF snapshots and their hourly backfill
"""

import re
import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import select
from uuid import UUID, uuid4

from skuld.common.exceptions import ConflictError, SequencingError
from skuld.modules.documents.calculator import compute_totals, line_total
from skuld.modules.documents.crud import DocumentRepository
from skuld.modules.documents.models import Document, DocumentStatus
from skuld.modules.documents.schemas import DocumentCreate, DocumentLineCreate
from skuld.modules.documents.service import DocumentLifecycleService, pdf_key
from skuld.modules.documents.tasks import _backfill_async
from skuld.modules.sequences.models import DocType
from skuld.modules.sequences.service import SequenceGenerator

REFERENCE_PATTERN = re.compile(r"^(FAC|DEV|AV)-\d{4}-\d{4}$")


# ===== FIXTURES =====

@pytest.fixture
def mixed_lines(line_payload):
    return [
        line_payload("Chaise restauree", "2", "100.50", "BIC_VENTE"),
        line_payload("Montage", "3", "33.33", "BIC_PRESTA"),
        line_payload("Conseil", "1", "500", "BNC"),
    ]


@pytest.fixture
def create_document(client, contact, line_payload):
    async def create(doc_type="INVOICE", lines=None, **extra):
        payload = {
            "contact_id": str(contact.id),
            "doc_type": doc_type,
            "payment_method": "BANK_TRANSFER",
            "payment_terms_days": 30,
            "lines": lines or [line_payload()],
        }
        payload.update(extra)
        response = await client.post("/documents", json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return create


def year_reference(prefix, counter):
    return f"{prefix}{date.today().year}-{counter:04d}"


async def stored_at(db, document_id):
    return (await db.execute(
        select(Document.pdf_stored_at).where(Document.id == UUID(document_id))
    )).scalar_one()


# ===== TOTALS =====

class TestTotals:

    def test_line_total_rounds_half_up(self):
        assert line_total(Decimal("3"), Decimal("33.335")) == Decimal("100.01")
        assert line_total(Decimal("1.5"), Decimal("10")) == Decimal("15.00")

    def test_compute_totals_by_category(self):
        lines = [
            DocumentLineCreate(description="a", quantity=2, unit_price=Decimal("100.50"), fiscal_category="BIC_VENTE"),
            DocumentLineCreate(description="b", quantity=1, unit_price=Decimal("20"), fiscal_category="BIC_VENTE"),
            DocumentLineCreate(description="c", quantity=1, unit_price=Decimal("500"), fiscal_category="BNC"),
        ]
        rows = DocumentRepository(None)._build_lines(uuid4(), lines)
        totals = compute_totals(rows)

        assert totals.total_bic_vente == Decimal("221.00")
        assert totals.total_bic_presta == Decimal("0.00")
        assert totals.total_bnc == Decimal("500.00")
        assert totals.total_ht == totals.total_bic_vente + totals.total_bic_presta + totals.total_bnc
        assert [row.position for row in rows] == [1, 2, 3]


# ===== CREATION AND UPDATE =====

class TestDraftDocuments:

    async def test_create_computes_totals(self, create_document, mixed_lines):
        document = await create_document(lines=mixed_lines)

        assert document["status"] == "DRAFT"
        assert document["reference"] is None
        assert [line["position"] for line in document["lines"]] == [1, 2, 3]
        assert Decimal(document["total_bic_vente"]) == Decimal("201.00")
        assert Decimal(document["total_bic_presta"]) == Decimal("99.99")
        assert Decimal(document["total_bnc"]) == Decimal("500.00")
        assert Decimal(document["total_ht"]) == Decimal("800.99")
        assert document["issued_date"] == date.today().isoformat()

    async def test_create_requires_a_line(self, client, contact):
        response = await client.post("/documents", json={
            "contact_id": str(contact.id), "doc_type": "INVOICE", "lines": [],
        })
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_create_unknown_contact(self, client, line_payload):
        response = await client.post("/documents", json={
            "contact_id": str(uuid4()), "doc_type": "INVOICE", "lines": [line_payload()],
        })
        assert response.status_code == 404
        assert response.json() == {"detail": "Contact not found", "code": "NOT_FOUND"}

    async def test_update_replaces_lines_and_totals(self, client, create_document, line_payload):
        document = await create_document()

        response = await client.put(f"/documents/{document['id']}", json={
            "notes": "Livraison incluse",
            "lines": [
                line_payload("Table", "1", "250", "BIC_VENTE"),
                line_payload("Livraison", "1", "40", "BIC_PRESTA"),
            ],
        })

        assert response.status_code == 200
        body = response.json()
        assert body["notes"] == "Livraison incluse"
        assert [line["description"] for line in body["lines"]] == ["Table", "Livraison"]
        assert Decimal(body["total_bic_vente"]) == Decimal("250.00")
        assert Decimal(body["total_bic_presta"]) == Decimal("40.00")
        assert Decimal(body["total_ht"]) == Decimal("290.00")

    async def test_update_with_empty_patch(self, client, create_document):
        document = await create_document()
        response = await client.put(f"/documents/{document['id']}", json={})
        assert response.status_code == 422

    @pytest.mark.parametrize("field", ["issued_date", "contact_id"])
    async def test_update_rejects_null_required_field(self, client, create_document, field):
        document = await create_document()

        response = await client.put(f"/documents/{document['id']}", json={field: None})

        assert response.status_code == 422
        assert response.json()["errors"] == {field: "required"}
        unchanged = (await client.get(f"/documents/{document['id']}")).json()
        assert unchanged["issued_date"] == document["issued_date"]

    async def test_sent_document_is_immutable(self, client, create_document):
        document = await create_document()
        await client.post(f"/documents/{document['id']}/send")

        response = await client.put(f"/documents/{document['id']}", json={"notes": "changed"})

        assert response.status_code == 409
        assert response.json()["detail"] == "only a draft document can be modified"
        unchanged = (await client.get(f"/documents/{document['id']}")).json()
        assert unchanged["notes"] is None

    async def test_list_filters_by_type(self, client, create_document):
        await create_document("INVOICE")
        await create_document("QUOTE")

        response = await client.get("/documents", params={"type": "QUOTE"})

        body = response.json()
        assert body["meta"]["total"] == 1
        assert body["items"][0]["doc_type"] == "QUOTE"
        assert body["items"][0]["contact_name"] == "Atelier Dupont"

    async def test_unknown_document(self, client):
        response = await client.get(f"/documents/{uuid4()}")
        assert response.status_code == 404


# ===== SEND =====

class TestSend:

    async def test_consecutive_references(self, client, create_document):
        first = await create_document()
        second = await create_document()

        sent_first = (await client.post(f"/documents/{first['id']}/send")).json()
        sent_second = (await client.post(f"/documents/{second['id']}/send")).json()

        assert sent_first["status"] == "SENT"
        assert sent_first["reference"] == year_reference("FAC-", 1)
        assert sent_second["reference"] == year_reference("FAC-", 2)
        assert REFERENCE_PATTERN.match(sent_first["reference"])

    async def test_series_are_per_document_type(self, client, create_document):
        invoice = await create_document("INVOICE")
        quote = await create_document("QUOTE")

        invoice_ref = (await client.post(f"/documents/{invoice['id']}/send")).json()["reference"]
        quote_ref = (await client.post(f"/documents/{quote['id']}/send")).json()["reference"]

        assert invoice_ref == year_reference("FAC-", 1)
        assert quote_ref == year_reference("DEV-", 1)

    async def test_send_twice_conflicts(self, client, create_document):
        document = await create_document()
        first = (await client.post(f"/documents/{document['id']}/send")).json()

        response = await client.post(f"/documents/{document['id']}/send")

        assert response.status_code == 409
        assert response.json() == {"detail": "only a draft can be sent", "code": "CONFLICT"}
        again = (await client.get(f"/documents/{document['id']}")).json()
        assert again["reference"] == first["reference"]
        assert again["status"] == "SENT"

    async def test_send_stores_pdf_snapshot(self, client, storage, company_settings, create_document, mixed_lines):
        document = await create_document(lines=mixed_lines)

        await client.post(f"/documents/{document['id']}/send")

        key = pdf_key(document["id"])
        assert storage.objects[key].startswith(b"%PDF")
        assert storage.content_types[key] == "application/pdf"

    async def test_send_succeeds_when_storage_fails(self, client, storage, company_settings, create_document):
        document = await create_document()
        storage.fail_on_put = True

        response = await client.post(f"/documents/{document['id']}/send")

        assert response.status_code == 200
        assert response.json()["status"] == "SENT"
        assert storage.objects == {}

    async def test_send_without_settings_skips_pdf(self, client, storage, create_document):
        document = await create_document()

        response = await client.post(f"/documents/{document['id']}/send")

        assert response.status_code == 200
        assert pdf_key(document["id"]) not in storage.objects

    async def test_numbering_failure_leaves_draft(self, client, create_document, monkeypatch):
        async def failing(self, *args, **kwargs):
            raise SequencingError()

        monkeypatch.setattr(SequenceGenerator, "next_reference", failing)
        document = await create_document()

        response = await client.post(f"/documents/{document['id']}/send")

        assert response.status_code == 500
        assert response.json() == {"detail": "numbering failed", "code": "SEQUENCING_ERROR"}
        unchanged = (await client.get(f"/documents/{document['id']}")).json()
        assert unchanged["status"] == "DRAFT"
        assert unchanged["reference"] is None

    async def test_lost_race_hands_the_number_back(self, db, tenant_id, contact, storage, renderer, monkeypatch):
        service = DocumentLifecycleService(db, storage, renderer)
        document = await service.create_document(tenant_id, DocumentCreate(
            contact_id=contact.id,
            doc_type=DocType.INVOICE,
            lines=[DocumentLineCreate(description="Audit", quantity=1, unit_price=Decimal("900"),
                                      fiscal_category="BNC")],
        ))
        document_id = document.id

        async def concurrent_sender_won(*args, **kwargs):
            return False

        monkeypatch.setattr(service.repo, "update_status", concurrent_sender_won)
        with pytest.raises(ConflictError):
            await service.send(tenant_id, document_id)

        reloaded = await service.get_document(tenant_id, document_id)
        assert reloaded.status == DocumentStatus.DRAFT
        assert reloaded.reference is None

        sent = await DocumentLifecycleService(db, storage, renderer).send(tenant_id, document_id)
        assert sent.reference == year_reference("FAC-", 1)


# ===== PAY =====

class TestPay:

    async def test_pay_records_income(self, client, create_document, mixed_lines):
        document = await create_document(lines=mixed_lines)
        sent = (await client.post(f"/documents/{document['id']}/send")).json()

        response = await client.post(f"/documents/{document['id']}/pay")

        assert response.status_code == 200
        body = response.json()
        assert body["document"]["status"] == "PAID"
        transaction = body["transaction"]
        assert Decimal(transaction["amount"]) == Decimal("800.99")
        assert transaction["direction"] == "INCOME"
        assert transaction["label"] == f"Payment {sent['reference']}"
        assert transaction["document_id"] == document["id"]
        assert transaction["contact_id"] == document["contact_id"]
        assert transaction["payment_method"] == "BANK_TRANSFER"
        assert transaction["date"] == date.today().isoformat()

        listed = (await client.get("/transactions")).json()
        assert listed["meta"]["total"] == 1

    async def test_pay_draft_conflicts(self, client, create_document):
        document = await create_document()
        response = await client.post(f"/documents/{document['id']}/pay")
        assert response.status_code == 409
        assert response.json()["detail"] == "only a sent document can be paid"

    async def test_pay_twice_creates_one_transaction(self, client, create_document):
        document = await create_document()
        await client.post(f"/documents/{document['id']}/send")
        await client.post(f"/documents/{document['id']}/pay")

        response = await client.post(f"/documents/{document['id']}/pay")

        assert response.status_code == 409
        assert (await client.get("/transactions")).json()["meta"]["total"] == 1

    async def test_pay_zero_total_conflicts(self, client, create_document, line_payload):
        document = await create_document(lines=[line_payload("Geste commercial", "1", "0")])
        await client.post(f"/documents/{document['id']}/send")

        response = await client.post(f"/documents/{document['id']}/pay")

        assert response.status_code == 409
        assert response.json()["detail"] == "a document with a zero total cannot be paid"
        assert (await client.get(f"/documents/{document['id']}")).json()["status"] == "SENT"
        assert (await client.get("/transactions")).json()["meta"]["total"] == 0


# ===== CANCEL =====

class TestCancel:

    async def test_cancel_draft_deletes_it(self, client, create_document):
        document = await create_document()

        response = await client.post(f"/documents/{document['id']}/cancel")

        assert response.status_code == 200
        assert response.json()["message"] == "Draft deleted"
        assert response.json()["credit_note"] is None
        assert (await client.get(f"/documents/{document['id']}")).status_code == 404

    @pytest.mark.parametrize("pay_first", [False, True])
    async def test_cancel_sent_or_paid_spawns_credit_note(self, client, create_document, mixed_lines, pay_first):
        document = await create_document(lines=mixed_lines)
        sent = (await client.post(f"/documents/{document['id']}/send")).json()
        if pay_first:
            await client.post(f"/documents/{document['id']}/pay")

        response = await client.post(f"/documents/{document['id']}/cancel")

        assert response.status_code == 200
        body = response.json()
        assert body["document"]["status"] == "CANCELLED"
        assert body["document"]["reference"] == sent["reference"]

        credit_note = body["credit_note"]
        assert credit_note["doc_type"] == "CREDIT_NOTE"
        assert credit_note["status"] == "DRAFT"
        assert credit_note["reference"] is None
        assert credit_note["quote_id"] == document["id"]
        assert credit_note["contact_id"] == document["contact_id"]
        assert credit_note["notes"] == f"Credit note for cancellation of {sent['reference']}"
        for column in ("total_bic_vente", "total_bic_presta", "total_bnc", "total_ht"):
            assert Decimal(credit_note[column]) == Decimal(document[column])

    async def test_cancel_twice_conflicts(self, client, create_document):
        document = await create_document()
        await client.post(f"/documents/{document['id']}/send")
        await client.post(f"/documents/{document['id']}/cancel")

        response = await client.post(f"/documents/{document['id']}/cancel")

        assert response.status_code == 409
        assert response.json()["detail"] == "already cancelled"
        credit_notes = (await client.get("/documents", params={"type": "CREDIT_NOTE"})).json()
        assert credit_notes["meta"]["total"] == 1

    async def test_credit_note_gets_its_own_series(self, client, create_document):
        document = await create_document()
        await client.post(f"/documents/{document['id']}/send")
        credit_note = (await client.post(f"/documents/{document['id']}/cancel")).json()["credit_note"]

        sent = (await client.post(f"/documents/{credit_note['id']}/send")).json()

        assert sent["reference"] == year_reference("AV-", 1)


# ===== CONVERT =====

class TestConvert:

    async def test_convert_quote_copies_lines(self, client, create_document, mixed_lines):
        quote = await create_document("QUOTE", lines=mixed_lines, notes="Valable 30 jours", terms="Acompte 30%")

        response = await client.post(f"/documents/{quote['id']}/convert")

        assert response.status_code == 201
        invoice = response.json()
        assert invoice["doc_type"] == "INVOICE"
        assert invoice["status"] == "DRAFT"
        assert invoice["quote_id"] == quote["id"]
        assert invoice["notes"] == "Valable 30 jours"
        assert invoice["terms"] == "Acompte 30%"
        assert invoice["payment_terms_days"] == 30
        assert len(invoice["lines"]) == len(quote["lines"])
        for copied, original in zip(invoice["lines"], quote["lines"]):
            assert copied["id"] != original["id"]
            for field in ("position", "description", "unit", "fiscal_category"):
                assert copied[field] == original[field]
            for field in ("quantity", "unit_price", "total"):
                assert Decimal(copied[field]) == Decimal(original[field])
        assert Decimal(invoice["total_ht"]) == Decimal(quote["total_ht"])

        untouched = (await client.get(f"/documents/{quote['id']}")).json()
        assert untouched["status"] == "DRAFT"

    async def test_convert_invoice_conflicts(self, client, create_document):
        invoice = await create_document("INVOICE")
        response = await client.post(f"/documents/{invoice['id']}/convert")
        assert response.status_code == 409
        assert response.json()["detail"] == "only a quote can be converted"


# ===== PDF =====

class TestPdf:

    async def test_pdf_of_draft_conflicts(self, client, create_document):
        document = await create_document()
        response = await client.get(f"/documents/{document['id']}/pdf")
        assert response.status_code == 409
        assert response.json()["detail"] == "PDF only available after sending"

    async def test_pdf_download(self, client, company_settings, create_document):
        document = await create_document()
        sent = (await client.post(f"/documents/{document['id']}/send")).json()

        response = await client.get(f"/documents/{document['id']}/pdf")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == f'inline; filename="{sent["reference"]}.pdf"'
        assert response.content.startswith(b"%PDF")

    async def test_pdf_missing_snapshot(self, client, create_document):
        document = await create_document()
        await client.post(f"/documents/{document['id']}/send")

        response = await client.get(f"/documents/{document['id']}/pdf")

        assert response.status_code == 404

    async def test_backfill_renders_missing_snapshots(
        self, client, storage, renderer, session_factory, company_settings, create_document
    ):
        document = await create_document()
        storage.fail_on_put = True
        await client.post(f"/documents/{document['id']}/send")
        storage.fail_on_put = False

        rendered = await _backfill_async(session_factory=session_factory, storage=storage, renderer=renderer)

        assert rendered == 1
        assert storage.objects[pdf_key(document["id"])].startswith(b"%PDF")
        assert await _backfill_async(session_factory=session_factory, storage=storage, renderer=renderer) == 0

    async def test_send_records_snapshot_time(self, client, db, company_settings, create_document):
        document = await create_document()
        await client.post(f"/documents/{document['id']}/send")

        assert await stored_at(db, document["id"]) is not None

    async def test_backfill_ignores_stored_snapshots(
        self, client, storage, renderer, session_factory, company_settings, create_document, monkeypatch
    ):
        document = await create_document()
        await client.post(f"/documents/{document['id']}/send")
        checked = []

        async def exists(key):
            checked.append(key)
            return key in storage.objects

        monkeypatch.setattr(storage, "exists", exists)

        assert await _backfill_async(session_factory=session_factory, storage=storage, renderer=renderer) == 0
        assert checked == []

    async def test_backfill_marks_object_already_in_storage(
        self, client, db, storage, renderer, session_factory, company_settings, create_document
    ):
        document = await create_document()
        storage.fail_on_put = True
        await client.post(f"/documents/{document['id']}/send")
        storage.fail_on_put = False
        storage.objects[pdf_key(document["id"])] = b"%PDF-1.4 stored"
        assert await stored_at(db, document["id"]) is None

        rendered = await _backfill_async(session_factory=session_factory, storage=storage, renderer=renderer)

        assert rendered == 0
        assert storage.objects[pdf_key(document["id"])] == b"%PDF-1.4 stored"
        assert await stored_at(db, document["id"]) is not None


# ===== REPOSITORY =====

class TestConditionalStatusUpdate:

    async def test_update_status_requires_expected_status(self, db, tenant_id, contact):
        repo = DocumentRepository(db)
        document = await repo.create(tenant_id, {
            "contact_id": contact.id,
            "doc_type": DocType.INVOICE,
            "status": DocumentStatus.DRAFT,
        }, [DocumentLineCreate(description="x", quantity=1, unit_price=Decimal("10"), fiscal_category="BNC")])
        await db.commit()

        assert await repo.update_status(tenant_id, document.id, DocumentStatus.SENT, DocumentStatus.PAID) is False
        assert await repo.update_status(tenant_id, document.id, DocumentStatus.DRAFT, DocumentStatus.SENT) is True
        assert await repo.update_status(tenant_id, document.id, DocumentStatus.DRAFT, DocumentStatus.SENT) is False
        await db.commit()

        assert await repo.get_status(tenant_id, document.id) == DocumentStatus.SENT

    async def test_other_tenant_cannot_see_document(self, db, contact, tenant_id):
        repo = DocumentRepository(db)
        document = await repo.create(tenant_id, {
            "contact_id": contact.id,
            "doc_type": DocType.QUOTE,
            "status": DocumentStatus.DRAFT,
        }, [DocumentLineCreate(description="x", quantity=1, unit_price=Decimal("10"), fiscal_category="BNC")])
        await db.commit()

        assert await repo.get_by_id(uuid4(), document.id) is None
        assert await repo.get_status(uuid4(), document.id) is None
