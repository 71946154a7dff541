from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from uuid import UUID
from datetime import date, datetime

from skuld.common.enums import PaymentMethod
from skuld.common.validators import (
    clean_identifier, validate_siret, validate_postal_code, normalize_iban, normalize_bic
)
from skuld.modules.company.models import ActivityType, DeclarationFrequency


class _SettingsValidators(BaseModel):

    @field_validator('siret', check_fields=False)
    @classmethod
    def validate_siret(cls, v):
        if v is None:
            return v
        if not validate_siret(v):
            raise ValueError('SIRET must contain exactly 14 digits')
        return clean_identifier(v)

    @field_validator('postal_code', check_fields=False)
    @classmethod
    def validate_postal_code(cls, v):
        if v is None:
            return v
        if not validate_postal_code(v):
            raise ValueError('Postal code must contain 5 digits')
        return v

    @field_validator('bank_iban', check_fields=False)
    @classmethod
    def validate_iban(cls, v):
        return normalize_iban(v)

    @field_validator('bank_bic', check_fields=False)
    @classmethod
    def validate_bic(cls, v):
        return normalize_bic(v)


class SettingsCreate(_SettingsValidators):
    siret: str
    company_name: str = Field(..., min_length=1, max_length=200)
    activity_type: ActivityType
    address_line1: str = Field(..., min_length=1, max_length=500)
    address_line2: Optional[str] = Field(None, max_length=500)
    postal_code: str
    city: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)
    email: EmailStr
    bank_iban: Optional[str] = None
    bank_bic: Optional[str] = None
    vat_exempt_text: Optional[str] = Field(None, max_length=500)
    activity_start_date: Optional[date] = None
    declaration_frequency: Optional[DeclarationFrequency] = None
    default_payment_terms: Optional[int] = Field(None, ge=0, le=365)
    default_payment_method: Optional[PaymentMethod] = None


class SettingsUpdate(_SettingsValidators):
    siret: Optional[str] = None
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    activity_type: Optional[ActivityType] = None
    address_line1: Optional[str] = Field(None, min_length=1, max_length=500)
    address_line2: Optional[str] = Field(None, max_length=500)
    postal_code: Optional[str] = None
    city: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    bank_iban: Optional[str] = None
    bank_bic: Optional[str] = None
    vat_exempt_text: Optional[str] = Field(None, max_length=500)
    activity_start_date: Optional[date] = None
    declaration_frequency: Optional[DeclarationFrequency] = None
    default_payment_terms: Optional[int] = Field(None, ge=0, le=365)
    default_payment_method: Optional[PaymentMethod] = None


class SettingsOut(BaseModel):
    id: UUID
    siret: str
    company_name: str
    activity_type: ActivityType
    address_line1: str
    address_line2: Optional[str] = None
    postal_code: str
    city: str
    phone: Optional[str] = None
    email: str
    bank_iban: Optional[str] = None
    bank_bic: Optional[str] = None
    vat_exempt_text: str
    activity_start_date: Optional[date] = None
    declaration_frequency: DeclarationFrequency
    default_payment_terms: int
    default_payment_method: PaymentMethod
    logo_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
