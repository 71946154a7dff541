"""
Tests for the PDF formatting helpers and renderers
"""

import pytest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from skuld.modules.pdf.canvas import BOLD, REGULAR
from skuld.modules.pdf.formatting import (
    doc_type_label, fiscal_category_label, format_currency, format_date, format_quantity,
    payment_method_label, truncate_text, wrap_text,
)
from skuld.modules.pdf.renderer import DocumentPdfRenderer


# ===== FIXTURES =====

@pytest.fixture
def issuer():
    return SimpleNamespace(
        company_name="Studio Martin",
        siret="73282932000074",
        address_line1="4 place Bellecour",
        address_line2=None,
        postal_code="69002",
        city="Lyon",
        phone="0601020304",
        email="hello@studio-martin.fr",
        bank_iban="FR7630006000011234567890189",
        bank_bic="AGRIFRPP",
        vat_exempt_text=None,
    )


@pytest.fixture
def recipient():
    return SimpleNamespace(
        display_name="Atelier Dupont",
        legal_name="Atelier Dupont SARL",
        address_line1="12 rue des Lilas",
        address_line2=None,
        postal_code="69003",
        city="Lyon",
        siren="732829320",
    )


def make_document(doc_type="INVOICE", **overrides):
    values = dict(
        doc_type=doc_type,
        reference="FAC-2025-0001",
        issued_date=date(2025, 3, 1),
        due_date=date(2025, 3, 31),
        payment_method="BANK_TRANSFER",
        payment_terms_days=30,
        total_bic_vente=Decimal("201.00"),
        total_bic_presta=Decimal("1500.00"),
        total_bnc=Decimal("0.00"),
        total_ht=Decimal("1701.00"),
        notes="Merci pour votre confiance",
        terms=None,
        footer_text="Studio Martin - EI",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def make_line(description="Site vitrine", quantity="1", unit_price="1500.00", total="1500.00",
              category="BIC_PRESTA"):
    return SimpleNamespace(
        description=description,
        quantity=Decimal(quantity),
        unit="forfait",
        unit_price=Decimal(unit_price),
        total=Decimal(total),
        fiscal_category=category,
    )


# ===== FORMATTING =====

class TestFormatting:

    @pytest.mark.parametrize("amount,expected", [
        (Decimal("1234.56"), "1 234,56 EUR"),
        (Decimal("0"), "0,00 EUR"),
        (Decimal("-50"), "-50,00 EUR"),
        (Decimal("1234567.895"), "1 234 567,90 EUR"),
        ("12.5", "12,50 EUR"),
    ])
    def test_format_currency(self, amount, expected):
        assert format_currency(amount) == expected

    def test_format_date(self):
        assert format_date("2026-02-07") == "07/02/2026"
        assert format_date(date(2025, 12, 1)) == "01/12/2025"
        assert format_date(None) == ""

    def test_format_quantity(self):
        assert format_quantity(Decimal("3.0000")) == "3"
        assert format_quantity(Decimal("1.5")) == "1,50"

    def test_labels(self):
        assert doc_type_label("CREDIT_NOTE") == "AVOIR"
        assert payment_method_label("CHECK") == "Cheque"
        assert payment_method_label(None) == ""
        assert fiscal_category_label("BIC_VENTE") == "BIC Vente"

    def test_wrap_text(self):
        text = "mot " * 60
        lines = wrap_text(text.strip(), REGULAR, 10, 200)
        assert len(lines) > 1
        assert " ".join(lines) == text.strip()
        assert wrap_text("a\n\nb", REGULAR, 10, 200) == ["a", "", "b"]

    def test_truncate_text(self):
        assert truncate_text("court", BOLD, 8, 200) == "court"
        truncated = truncate_text("x" * 200, REGULAR, 8, 50)
        assert truncated.endswith("...")
        assert len(truncated) < 200


# ===== RENDERING =====

class TestDocumentPdfRenderer:

    def test_render_invoice(self, issuer, recipient):
        lines = [
            make_line(),
            make_line("Chaise restauree " * 10, "2", "100.50", "201.00", "BIC_VENTE"),
        ]

        pdf = DocumentPdfRenderer().render_document(issuer, make_document(), lines, recipient)

        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    @pytest.mark.parametrize("doc_type", ["QUOTE", "CREDIT_NOTE"])
    def test_render_other_types(self, issuer, recipient, doc_type):
        document = make_document(doc_type, reference="DEV-2025-0003", due_date=None, notes=None,
                                 terms="Acompte de 30%", footer_text=None)

        pdf = DocumentPdfRenderer().render_document(issuer, document, [], recipient)

        assert pdf.startswith(b"%PDF")

    def test_undecodable_logo_is_skipped(self, issuer, recipient):
        pdf = DocumentPdfRenderer().render_document(
            issuer, make_document(), [make_line()], recipient, logo=b"not an image", logo_mime_type="image/png"
        )
        assert pdf.startswith(b"%PDF")

    def test_render_cession_certificate(self, issuer):
        transaction = SimpleNamespace(
            label="Fauteuil Louis XV", notes="Tissu a refaire", amount=Decimal("85.00"), date=date(2025, 4, 2)
        )
        seller = SimpleNamespace(
            display_name="Paul Bernard", address_line1="3 impasse des Roses", address_line2=None,
            postal_code="69100", city="Villeurbanne",
        )

        pdf = DocumentPdfRenderer().render_cession_certificate(issuer, transaction, seller)

        assert pdf.startswith(b"%PDF")
