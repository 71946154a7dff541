"""
Pydantic schemas for the Contacts module
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from uuid import UUID
from datetime import datetime
import re

from skuld.common.validators import validate_siren
from skuld.modules.contacts.models import ContactType


EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class ContactBase(BaseModel):
    type: Optional[ContactType] = None
    display_name: str = Field(..., min_length=1, max_length=200, description="Name shown on documents")
    legal_name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    address_line1: Optional[str] = Field(None, max_length=500)
    address_line2: Optional[str] = Field(None, max_length=500)
    postal_code: Optional[str] = Field(None, max_length=10)
    city: Optional[str] = Field(None, max_length=200)
    country: Optional[str] = Field(None, min_length=2, max_length=2, description="ISO country code, e.g. FR")
    is_individual: Optional[bool] = None
    siren: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v is None or not v.strip():
            return None
        if not re.match(EMAIL_PATTERN, v):
            raise ValueError('Invalid email address')
        return v

    @field_validator('siren')
    @classmethod
    def validate_siren(cls, v):
        if v is None:
            return v
        if not validate_siren(v):
            raise ValueError('SIREN must contain exactly 9 digits')
        return v

    @field_validator('country')
    @classmethod
    def validate_country(cls, v):
        return v.upper() if v else v


class ContactCreate(ContactBase):

    @model_validator(mode='after')
    def validate_individual_siren(self):
        if self.is_individual and self.siren:
            raise ValueError('An individual cannot have a SIREN number')
        return self


class ContactUpdate(ContactBase):
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)


class ContactOut(BaseModel):
    id: UUID
    type: ContactType
    display_name: str
    legal_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    country: str
    is_individual: bool
    siren: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContactSummary(BaseModel):
    id: UUID
    display_name: str

    class Config:
        from_attributes = True
