from pydantic import BaseModel
from decimal import Decimal
from typing import List
from datetime import date

from skuld.common.enums import FiscalCategory


class ThresholdAlert(BaseModel):
    category: FiscalCategory
    threshold: int
    current: Decimal
    percent: int
    exceeded: bool


class UrssafSummary(BaseModel):
    """Income per fiscal category for a declaration period and its calendar year"""
    period: str
    start_date: date
    end_date: date
    bic_vente: Decimal
    bic_presta: Decimal
    bnc: Decimal
    yearly_bic_vente: Decimal
    yearly_bic_presta: Decimal
    yearly_bnc: Decimal
    alerts: List[ThresholdAlert] = []
