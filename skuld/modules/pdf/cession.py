"""
Certificate of transfer (certificat de cession) for second-hand purchases
from private individuals.
"""
from skuld.modules.pdf.canvas import (
    PdfCanvas, W, MARGIN, CONTENT_W, BLACK, GRAY, PRIMARY, REGULAR, BOLD, H,
)
from skuld.modules.pdf.formatting import format_currency, format_date

LEGAL_NOTICES = (
    "Ce document atteste de la cession du bien decrit ci-dessus entre les parties mentionnees.",
    "Article 321-1 du Code penal - Tout achat d'occasion doit etre tracable.",
)


def render_cession_certificate(settings, transaction, contact) -> bytes:
    pdf = PdfCanvas(title="Certificat de cession")
    y = H - MARGIN

    y = pdf.text("CERTIFICAT DE CESSION", W / 2, y, font=BOLD, size=20, color=PRIMARY, align="center")
    y = pdf.text("Achat d'occasion aupres d'un particulier", W / 2, y, size=11, color=GRAY, align="center")
    y -= 15
    pdf.hline(MARGIN, y, CONTENT_W, color=PRIMARY, thickness=1)
    y -= 25

    y = pdf.text("Entre les soussignes :", MARGIN, y, font=BOLD, size=12) - 10

    # Seller: the private individual
    y = pdf.text("LE VENDEUR :", MARGIN, y, font=BOLD, size=11, color=PRIMARY) + 2
    y = pdf.text(contact.display_name, MARGIN + 20, y, font=BOLD)
    for line in (contact.address_line1, contact.address_line2):
        if line:
            y = pdf.text(line, MARGIN + 20, y)
    if contact.postal_code or contact.city:
        y = pdf.text(f"{contact.postal_code or ''} {contact.city or ''}".strip(), MARGIN + 20, y)
    y -= 15

    # Buyer: the company
    y = pdf.text("L'ACHETEUR :", MARGIN, y, font=BOLD, size=11, color=PRIMARY) + 2
    y = pdf.text(settings.company_name, MARGIN + 20, y, font=BOLD)
    y = pdf.text(f"SIRET : {settings.siret}", MARGIN + 20, y)
    y = pdf.text(settings.address_line1, MARGIN + 20, y)
    if settings.address_line2:
        y = pdf.text(settings.address_line2, MARGIN + 20, y)
    y = pdf.text(f"{settings.postal_code} {settings.city}", MARGIN + 20, y)

    y -= 25
    pdf.hline(MARGIN, y, CONTENT_W)
    y -= 25

    y = pdf.text("Il a ete convenu ce qui suit :", MARGIN, y, font=BOLD, size=12) - 10
    y = pdf.text("Le vendeur cede a l'acheteur le bien suivant :", MARGIN, y, size=11) - 5
    y = pdf.text(transaction.label, MARGIN + 20, y, font=BOLD, size=11, max_width=CONTENT_W - 20)
    if transaction.notes:
        y = pdf.text(transaction.notes, MARGIN + 20, y, color=GRAY, max_width=CONTENT_W - 20)
    y -= 20

    y = pdf.text(f"Pour le prix de : {format_currency(transaction.amount)}", MARGIN, y, font=BOLD, size=13) - 5
    y = pdf.text(f"Date de la transaction : {format_date(transaction.date)}", MARGIN, y, size=11)

    y -= 35
    pdf.hline(MARGIN, y, CONTENT_W)
    y -= 25

    y = pdf.text(f"Fait a {settings.city}, le {format_date(transaction.date)}", MARGIN, y, size=11)
    y -= 35

    col_mid = W / 2
    pdf.text("Signature du vendeur :", MARGIN, y, font=BOLD)
    pdf.text("Signature de l'acheteur :", col_mid + 20, y, font=BOLD)
    y -= 70
    pdf.hline(MARGIN, y, 180, color=BLACK)
    pdf.hline(col_mid + 20, y, 180, color=BLACK)

    legal_y = MARGIN + 30
    for offset, notice in enumerate(LEGAL_NOTICES):
        pdf.text(notice, MARGIN, legal_y - offset * 12, font=REGULAR, size=8, color=GRAY, max_width=CONTENT_W)

    return pdf.to_bytes()
