from skuld.database.database import Base
from sqlalchemy import Column, String, Integer, Date, Text, Enum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from skuld.common.mixins import TenantMixin, TimestampMixin
from skuld.common.enums import PaymentMethod
import enum


DEFAULT_VAT_EXEMPT_TEXT = "TVA non applicable, art. 293 B du CGI"
DEFAULT_PAYMENT_TERMS = 30


class ActivityType(str, enum.Enum):
    BIC_VENTE = "BIC_VENTE"
    BIC_PRESTA = "BIC_PRESTA"
    BNC = "BNC"
    MIXED = "MIXED"


class DeclarationFrequency(str, enum.Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"


class CompanySettings(Base, TenantMixin, TimestampMixin):
    """Issuer profile printed on every document. One row per tenant."""
    __tablename__ = "settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False)

    siret = Column(String(14), nullable=False)
    company_name = Column(String(200), nullable=False)
    activity_type = Column(Enum(ActivityType), nullable=False)

    address_line1 = Column(String(500), nullable=False)
    address_line2 = Column(String(500), nullable=True)
    postal_code = Column(String(5), nullable=False)
    city = Column(String(200), nullable=False)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=False)

    bank_iban = Column(String(34), nullable=True)
    bank_bic = Column(String(11), nullable=True)

    vat_exempt_text = Column(Text, nullable=False, default=DEFAULT_VAT_EXEMPT_TEXT)
    activity_start_date = Column(Date, nullable=True)
    declaration_frequency = Column(Enum(DeclarationFrequency), nullable=False, default=DeclarationFrequency.MONTHLY)
    default_payment_terms = Column(Integer, nullable=False, default=DEFAULT_PAYMENT_TERMS)
    default_payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.BANK_TRANSFER)

    logo_url = Column(String(500), nullable=True)  # Object store key

    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_settings_tenant"),
    )
