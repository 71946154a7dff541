from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional
from uuid import UUID
from datetime import date as Date, datetime

from skuld.common.enums import FiscalCategory, PaymentMethod
from skuld.modules.contacts.schemas import ContactOut
from skuld.modules.transactions.models import TransactionDirection
from skuld.modules.proofs.schemas import ProofBundleOut


class TransactionCreate(BaseModel):
    date: Date
    amount: Decimal = Field(..., description="Amount, must be positive")
    direction: TransactionDirection
    label: str = Field(..., min_length=1, max_length=500)
    fiscal_category: Optional[FiscalCategory] = None
    payment_method: Optional[PaymentMethod] = None
    document_id: Optional[UUID] = None
    contact_id: Optional[UUID] = None
    is_second_hand: bool = False
    notes: Optional[str] = Field(None, max_length=2000)


class TransactionUpdate(BaseModel):
    date: Optional[Date] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    direction: Optional[TransactionDirection] = None
    label: Optional[str] = Field(None, min_length=1, max_length=500)
    fiscal_category: Optional[FiscalCategory] = None
    payment_method: Optional[PaymentMethod] = None
    document_id: Optional[UUID] = None
    contact_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=2000)


class TransactionOut(BaseModel):
    id: UUID
    date: Date
    amount: Decimal
    direction: TransactionDirection
    label: str
    fiscal_category: Optional[FiscalCategory] = None
    payment_method: Optional[PaymentMethod] = None
    document_id: Optional[UUID] = None
    contact_id: Optional[UUID] = None
    is_second_hand: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransactionListItem(TransactionOut):
    contact_name: Optional[str] = None
    proof_complete: Optional[bool] = None


class TransactionDetail(TransactionOut):
    contact: Optional[ContactOut] = None
    proof_bundle: Optional[ProofBundleOut] = None


class TransactionFilters(BaseModel):
    direction: Optional[TransactionDirection] = None
    fiscal_category: Optional[FiscalCategory] = None
    start_date: Optional[Date] = None
    end_date: Optional[Date] = None
