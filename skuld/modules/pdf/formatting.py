"""
Formatting helpers shared by the PDF renderers
"""
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union

from reportlab.pdfbase.pdfmetrics import stringWidth


DOC_TYPE_LABELS = {
    "INVOICE": "FACTURE",
    "QUOTE": "DEVIS",
    "CREDIT_NOTE": "AVOIR",
}

PAYMENT_METHOD_LABELS = {
    "BANK_TRANSFER": "Virement bancaire",
    "CASH": "Especes",
    "CHECK": "Cheque",
    "CARD": "Carte bancaire",
    "PAYPAL": "PayPal",
    "OTHER": "Autre",
}

FISCAL_CATEGORY_LABELS = {
    "BIC_VENTE": "BIC Vente",
    "BIC_PRESTA": "BIC Presta",
    "BNC": "BNC",
}


def _value(enum_or_str) -> Optional[str]:
    if enum_or_str is None:
        return None
    return getattr(enum_or_str, "value", enum_or_str)


def format_currency(amount: Union[Decimal, float, int, str]) -> str:
    """1234.56 -> "1 234,56 EUR" (space thousands separator, comma decimals)"""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    int_part, dec_part = f"{abs(value):.2f}".split(".")
    grouped = f"{int(int_part):,}".replace(",", " ")
    return f"{sign}{grouped},{dec_part} EUR"


def format_date(value: Union[str, date, datetime, None]) -> str:
    """ISO "2026-02-07" (or a date) -> "07/02/2026" """
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        value = value.strftime("%Y-%m-%d")
    year, month, day = value[:10].split("-")
    return f"{day}/{month}/{year}"


def format_quantity(quantity) -> str:
    """Whole quantities without decimals, others with two and a comma"""
    value = Decimal(str(quantity))
    if value == value.to_integral_value():
        return str(int(value))
    return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}".replace(".", ",")


def doc_type_label(doc_type) -> str:
    value = _value(doc_type)
    return DOC_TYPE_LABELS.get(value, value)


def payment_method_label(method) -> str:
    return PAYMENT_METHOD_LABELS.get(_value(method), "")


def fiscal_category_label(category) -> str:
    value = _value(category)
    return FISCAL_CATEGORY_LABELS.get(value, value)


def wrap_text(text: str, font_name: str, font_size: float, max_width: float) -> List[str]:
    """Split text into lines no wider than max_width. Honors explicit newlines."""
    lines: List[str] = []
    for paragraph in text.split("\n"):
        if not paragraph:
            lines.append("")
            continue
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if stringWidth(candidate, font_name, font_size) > max_width and current:
                lines.append(current)
                current = word
            else:
                current = candidate
        if current:
            lines.append(current)
    return lines


def truncate_text(text: str, font_name: str, font_size: float, max_width: float) -> str:
    """Cut text with a trailing ellipsis so that it fits max_width"""
    if stringWidth(text, font_name, font_size) <= max_width:
        return text
    truncated = text
    while len(truncated) > 3 and stringWidth(truncated + "...", font_name, font_size) > max_width:
        truncated = truncated[:-1]
    return truncated + "..."
