from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from skuld.common.enums import FiscalCategory, PaymentMethod
from skuld.modules.contacts.schemas import ContactOut
from skuld.modules.documents.models import DocumentStatus
from skuld.modules.sequences.models import DocType
from skuld.modules.transactions.schemas import TransactionOut


class DocumentLineCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=1000)
    quantity: Decimal = Field(..., gt=0, description="Quantity must be positive")
    unit: Optional[str] = Field(None, max_length=50)
    unit_price: Decimal = Field(..., ge=0, description="Unit price excluding tax")
    fiscal_category: FiscalCategory

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        if not v.strip():
            raise ValueError('Description is required')
        return v


class DocumentCreate(BaseModel):
    contact_id: UUID
    doc_type: DocType
    issued_date: Optional[date] = None
    due_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    payment_terms_days: Optional[int] = Field(None, ge=0, le=365)
    notes: Optional[str] = Field(None, max_length=2000)
    terms: Optional[str] = Field(None, max_length=2000)
    footer_text: Optional[str] = Field(None, max_length=1000)
    lines: List[DocumentLineCreate] = Field(..., min_length=1, description="At least one line")


class DocumentUpdate(BaseModel):
    """Patch of a DRAFT document. When ``lines`` is given the whole set is replaced."""
    contact_id: Optional[UUID] = None
    issued_date: Optional[date] = None
    due_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    payment_terms_days: Optional[int] = Field(None, ge=0, le=365)
    notes: Optional[str] = Field(None, max_length=2000)
    terms: Optional[str] = Field(None, max_length=2000)
    footer_text: Optional[str] = Field(None, max_length=1000)
    lines: Optional[List[DocumentLineCreate]] = Field(None, min_length=1)


class DocumentLineOut(BaseModel):
    id: UUID
    position: int
    description: str
    quantity: Decimal
    unit: Optional[str] = None
    unit_price: Decimal
    total: Decimal
    fiscal_category: FiscalCategory

    class Config:
        from_attributes = True


class DocumentOut(BaseModel):
    id: UUID
    contact_id: UUID
    doc_type: DocType
    status: DocumentStatus
    reference: Optional[str] = None
    quote_id: Optional[UUID] = None
    issued_date: date
    due_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    payment_terms_days: Optional[int] = None
    total_bic_vente: Decimal
    total_bic_presta: Decimal
    total_bnc: Decimal
    total_ht: Decimal
    notes: Optional[str] = None
    terms: Optional[str] = None
    footer_text: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DocumentListItem(DocumentOut):
    contact_name: Optional[str] = None


class DocumentDetail(DocumentOut):
    lines: List[DocumentLineOut] = []
    contact: Optional[ContactOut] = None


class PaymentResult(BaseModel):
    document: DocumentDetail
    transaction: TransactionOut


class CancellationResult(BaseModel):
    message: Optional[str] = None
    document: Optional[DocumentDetail] = None
    credit_note: Optional[DocumentDetail] = None
