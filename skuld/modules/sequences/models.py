from skuld.database.database import Base
from sqlalchemy import Column, String, Integer, Enum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from skuld.common.mixins import TenantMixin
import enum


class DocType(str, enum.Enum):
    QUOTE = "QUOTE"
    INVOICE = "INVOICE"
    CREDIT_NOTE = "CREDIT_NOTE"


DOC_PREFIX = {
    DocType.INVOICE: "FAC-",
    DocType.QUOTE: "DEV-",
    DocType.CREDIT_NOTE: "AV-",
}


class Sequence(Base, TenantMixin):
    """Legal numbering counter, one row per (tenant, doc_type, year)"""
    __tablename__ = "sequences"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    doc_type = Column(Enum(DocType), nullable=False)
    year = Column(Integer, nullable=False)
    prefix = Column(String(10), nullable=False)
    current_val = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("tenant_id", "doc_type", "year", name="uq_sequence_tenant_type_year"),
    )
