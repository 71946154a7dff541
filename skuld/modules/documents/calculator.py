"""
Line and document totals.

Line total = quantity x unit price, rounded half-up to the cent. Document
totals are the per fiscal category sums of line totals; total_ht is their sum.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable

from skuld.common.enums import FiscalCategory

CENT = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity, unit_price) -> Decimal:
    return money(Decimal(str(quantity)) * Decimal(str(unit_price)))


@dataclass
class DocumentTotals:
    by_category: Dict[FiscalCategory, Decimal] = field(
        default_factory=lambda: {category: Decimal("0.00") for category in FiscalCategory}
    )

    @property
    def total_bic_vente(self) -> Decimal:
        return self.by_category[FiscalCategory.BIC_VENTE]

    @property
    def total_bic_presta(self) -> Decimal:
        return self.by_category[FiscalCategory.BIC_PRESTA]

    @property
    def total_bnc(self) -> Decimal:
        return self.by_category[FiscalCategory.BNC]

    @property
    def total_ht(self) -> Decimal:
        return self.total_bic_vente + self.total_bic_presta + self.total_bnc

    def as_columns(self) -> dict:
        return {
            "total_bic_vente": self.total_bic_vente,
            "total_bic_presta": self.total_bic_presta,
            "total_bnc": self.total_bnc,
            "total_ht": self.total_ht,
        }


def compute_totals(lines: Iterable) -> DocumentTotals:
    """Sum line totals per fiscal category.

    ``lines`` items need ``total`` and ``fiscal_category`` attributes.
    """
    totals = DocumentTotals()
    for line in lines:
        category = FiscalCategory(line.fiscal_category)
        totals.by_category[category] = money(totals.by_category[category] + Decimal(str(line.total)))
    return totals
