"""
Enumerations shared by several modules
"""
from enum import Enum


class FiscalCategory(str, Enum):
    BIC_VENTE = "BIC_VENTE"    # Sales of goods
    BIC_PRESTA = "BIC_PRESTA"  # Commercial services
    BNC = "BNC"                # Liberal professions


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH = "CASH"
    CHECK = "CHECK"
    CARD = "CARD"
    PAYPAL = "PAYPAL"
    OTHER = "OTHER"
