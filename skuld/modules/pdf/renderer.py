"""
PDF rendering of commercial documents (invoice, quote, credit note).

Inputs are plain attribute holders: ORM rows or anything with the same
field names. Output is the raw PDF bytes.
"""
import io
import logging
from decimal import Decimal
from typing import Optional, Sequence

from reportlab.lib.utils import ImageReader

from skuld.modules.company.models import DEFAULT_VAT_EXEMPT_TEXT
from skuld.modules.pdf.canvas import (
    PdfCanvas, W, H, MARGIN, CONTENT_W, GRAY, LIGHT_GRAY, WHITE, PRIMARY, REGULAR, BOLD,
)
from skuld.modules.pdf.formatting import (
    format_currency, format_date, format_quantity, doc_type_label,
    payment_method_label, fiscal_category_label, truncate_text,
)

logger = logging.getLogger(__name__)

# Mandatory on every invoice (Code de commerce L.441-10 and D.441-5)
LATE_PENALTY_TEXT = (
    "En cas de retard de paiement, une pénalité égale à 3 fois le taux d'intérêt légal sera "
    "exigée (article L.441-10 du Code de commerce). Une indemnité forfaitaire de 40€ pour frais "
    "de recouvrement sera également due (article D.441-5 du Code de commerce)."
)

# Line table columns: (x, width)
COLUMNS = {
    "desc": (MARGIN, 190),
    "qty": (MARGIN + 190, 45),
    "unit": (MARGIN + 235, 45),
    "price": (MARGIN + 280, 70),
    "cat": (MARGIN + 350, 65),
    "total": (MARGIN + 415, CONTENT_W - 415),
}

LOGO_MAX_W = 120
LOGO_MAX_H = 60
SUPPORTED_LOGO_TYPES = ("image/png", "image/jpeg", "image/jpg")


def _status_value(value):
    return getattr(value, "value", value)


class DocumentPdfRenderer:
    """Renders document snapshots and cession certificates"""

    def render_document(
        self,
        settings,
        document,
        lines: Sequence,
        contact,
        logo: Optional[bytes] = None,
        logo_mime_type: Optional[str] = None,
    ) -> bytes:
        pdf = PdfCanvas(title=f"{doc_type_label(document.doc_type)} {document.reference or ''}".strip())
        is_invoice = _status_value(document.doc_type) == "INVOICE"
        y = H - MARGIN

        # Header: logo and issuer (left), type and reference (right)
        logo_height = self._draw_logo(pdf, logo, logo_mime_type, y)

        left_y = y - logo_height
        left_y = pdf.text(settings.company_name, MARGIN, left_y, font=BOLD, size=14, color=PRIMARY)
        left_y = pdf.text(settings.address_line1, MARGIN, left_y, size=9, color=GRAY)
        if settings.address_line2:
            left_y = pdf.text(settings.address_line2, MARGIN, left_y, size=9, color=GRAY)
        left_y = pdf.text(f"{settings.postal_code} {settings.city}", MARGIN, left_y, size=9, color=GRAY)
        left_y = pdf.text(f"SIRET : {settings.siret}", MARGIN, left_y, size=9, color=GRAY)
        if settings.phone:
            left_y = pdf.text(f"Tel : {settings.phone}", MARGIN, left_y, size=9, color=GRAY)
        left_y = pdf.text(settings.email, MARGIN, left_y, size=9, color=GRAY)

        right_x = W - MARGIN
        right_y = y - logo_height
        right_y = pdf.text(doc_type_label(document.doc_type), right_x, right_y,
                           font=BOLD, size=18, color=PRIMARY, align="right")
        right_y = pdf.text(f"N. {document.reference}", right_x, right_y, size=11, align="right")
        right_y = pdf.text(f"Date : {format_date(document.issued_date)}", right_x, right_y,
                           color=GRAY, align="right")
        if document.due_date:
            right_y = pdf.text(f"Echeance : {format_date(document.due_date)}", right_x, right_y,
                               color=GRAY, align="right")

        y = min(left_y, right_y) - 20

        # Recipient
        pdf.hline(MARGIN, y, CONTENT_W)
        y -= 15
        y = self._draw_recipient(pdf, contact, y) - 25

        # Lines
        y = self._draw_lines(pdf, lines, y)

        # Subtotals per category, only for mixed activity
        subtotals = [
            ("BIC Vente :", Decimal(str(document.total_bic_vente))),
            ("BIC Presta :", Decimal(str(document.total_bic_presta))),
            ("BNC :", Decimal(str(document.total_bnc))),
        ]
        cat_x = COLUMNS["cat"][0]
        total_x = COLUMNS["total"][0] + 4
        if len([amount for _, amount in subtotals if amount > 0]) > 1:
            for label, amount in subtotals:
                if amount > 0:
                    y -= 14
                    pdf.text(label, cat_x, y, size=9, color=GRAY)
                    pdf.text(format_currency(amount), total_x, y, size=9)
            y -= 5
            pdf.hline(cat_x, y, CONTENT_W - (cat_x - MARGIN))
            y -= 5

        y -= 10
        pdf.text("TOTAL HT", cat_x, y, font=BOLD, size=11, color=PRIMARY)
        pdf.text(format_currency(document.total_ht), total_x, y, font=BOLD, size=11)
        y -= 25

        # Legal notices
        pdf.hline(MARGIN, y, CONTENT_W)
        y -= 15
        vat_text = settings.vat_exempt_text or DEFAULT_VAT_EXEMPT_TEXT
        y = pdf.text(vat_text, MARGIN, y, font=BOLD, size=9, max_width=CONTENT_W)
        y -= 3

        if document.payment_method:
            y = pdf.text(f"Mode de paiement : {payment_method_label(document.payment_method)}", MARGIN, y, size=9)
        if document.payment_terms_days:
            y = pdf.text(f"Conditions de paiement : {document.payment_terms_days} jours", MARGIN, y, size=9)

        if is_invoice and settings.bank_iban:
            y -= 3
            bank_text = f"IBAN : {settings.bank_iban}"
            if settings.bank_bic:
                bank_text += f"  |  BIC : {settings.bank_bic}"
            y = pdf.text(bank_text, MARGIN, y, size=9)

        if is_invoice:
            y -= 8
            y = pdf.text(LATE_PENALTY_TEXT, MARGIN, y, size=7, color=GRAY, max_width=CONTENT_W, line_height=9)

        if document.notes:
            y -= 8
            y = pdf.text("Notes :", MARGIN, y, font=BOLD, size=9)
            y = pdf.text(document.notes, MARGIN, y, size=9, max_width=CONTENT_W)

        if document.terms:
            y -= 5
            y = pdf.text("Conditions particulieres :", MARGIN, y, font=BOLD, size=9)
            y = pdf.text(document.terms, MARGIN, y, size=9, max_width=CONTENT_W)

        # Footer
        footer_y = MARGIN + 20
        pdf.hline(MARGIN, footer_y + 10, CONTENT_W)
        if document.footer_text:
            pdf.text(document.footer_text, MARGIN, footer_y, size=8, color=GRAY, max_width=CONTENT_W)
        pdf.text(f"{settings.company_name} - SIRET {settings.siret}", W / 2, MARGIN,
                 size=8, color=GRAY, align="center")

        return pdf.to_bytes()

    def render_cession_certificate(self, settings, transaction, contact) -> bytes:
        from skuld.modules.pdf.cession import render_cession_certificate
        return render_cession_certificate(settings, transaction, contact)

    def _draw_logo(self, pdf: PdfCanvas, logo, logo_mime_type, y) -> float:
        """Draw the logo scaled into its box; returns the vertical space used"""
        if not logo or logo_mime_type not in SUPPORTED_LOGO_TYPES:
            return 0
        try:
            reader = ImageReader(io.BytesIO(logo))
            width, height = reader.getSize()
            scale = min(LOGO_MAX_W / width, LOGO_MAX_H / height, 1)
            w, h = width * scale, height * scale
            pdf.image(reader, MARGIN, y - h, w, h)
            return h + 10
        except Exception as e:
            logger.warning(f"Logo skipped, could not be decoded: {e}")
            return 0

    def _draw_recipient(self, pdf: PdfCanvas, contact, y) -> float:
        x = W - MARGIN - 220
        y = pdf.text("Destinataire", x, y, font=BOLD, size=9, color=GRAY)
        y = pdf.text(contact.display_name, x, y, font=BOLD, size=11)
        legal_name = getattr(contact, "legal_name", None)
        if legal_name and legal_name != contact.display_name:
            y = pdf.text(legal_name, x, y, size=9, color=GRAY)
        if getattr(contact, "address_line1", None):
            y = pdf.text(contact.address_line1, x, y, size=9)
        if getattr(contact, "address_line2", None):
            y = pdf.text(contact.address_line2, x, y, size=9)
        postal_code = getattr(contact, "postal_code", None)
        city = getattr(contact, "city", None)
        if postal_code or city:
            y = pdf.text(f"{postal_code or ''} {city or ''}".strip(), x, y, size=9)
        if getattr(contact, "siren", None):
            y = pdf.text(f"SIREN : {contact.siren}", x, y, size=9, color=GRAY)
        return y

    def _draw_lines(self, pdf: PdfCanvas, lines: Sequence, y) -> float:
        header_h = 20
        pdf.rect(MARGIN, y - header_h, CONTENT_W, header_h, PRIMARY)
        header_y = y - header_h + 6
        for key, title in (("desc", "Description"), ("qty", "Qte"), ("unit", "Unite"),
                           ("price", "Prix unit."), ("cat", "Categorie"), ("total", "Total HT")):
            pdf.text(title, COLUMNS[key][0] + 4, header_y, font=BOLD, size=8, color=WHITE)
        y -= header_h

        row_h = 20
        for index, line in enumerate(lines):
            if index % 2 == 0:
                pdf.rect(MARGIN, y - row_h, CONTENT_W, row_h, LIGHT_GRAY)
            row_y = y - row_h + 6
            desc_x, desc_w = COLUMNS["desc"]
            pdf.text(truncate_text(line.description, REGULAR, 8, desc_w - 8), desc_x + 4, row_y, size=8)
            pdf.text(format_quantity(line.quantity), COLUMNS["qty"][0] + 4, row_y, size=8)
            pdf.text(line.unit or "", COLUMNS["unit"][0] + 4, row_y, size=8)
            pdf.text(format_currency(line.unit_price), COLUMNS["price"][0] + 4, row_y, size=8)
            pdf.text(fiscal_category_label(line.fiscal_category), COLUMNS["cat"][0] + 4, row_y, size=8)
            pdf.text(format_currency(line.total), COLUMNS["total"][0] + 4, row_y, size=8)
            y -= row_h

        pdf.hline(MARGIN, y, CONTENT_W, color=PRIMARY, thickness=1)
        return y - 5
