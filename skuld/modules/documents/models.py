from skuld.database.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Date, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from datetime import date
from uuid import uuid4
from skuld.common.mixins import BaseMixin
from skuld.common.enums import FiscalCategory, PaymentMethod
from skuld.modules.sequences.models import DocType
from skuld.modules.contacts.models import Contact
import enum


class DocumentStatus(str, enum.Enum):
    DRAFT = "DRAFT"          # Editable, no reference yet
    SENT = "SENT"            # Numbered and immutable
    PAID = "PAID"            # Payment recorded in the ledger
    CANCELLED = "CANCELLED"  # Reversed by a credit note


class Document(Base, BaseMixin):
    """Quote, invoice or credit note"""
    __tablename__ = "documents"

    contact_id = Column(UUID(as_uuid=True), ForeignKey("contacts.id"), nullable=False, index=True)
    doc_type = Column(Enum(DocType), nullable=False)
    status = Column(Enum(DocumentStatus), nullable=False, default=DocumentStatus.DRAFT, index=True)
    reference = Column(String(50), nullable=True)
    # Source document: the quote an invoice was converted from, or the document a credit note cancels
    quote_id = Column(UUID(as_uuid=True), ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)

    issued_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=True)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    payment_terms_days = Column(Integer, nullable=True)

    # Totals (calculated from lines)
    total_bic_vente = Column(Numeric(15, 2), nullable=False, default=0)
    total_bic_presta = Column(Numeric(15, 2), nullable=False, default=0)
    total_bnc = Column(Numeric(15, 2), nullable=False, default=0)
    total_ht = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    footer_text = Column(Text, nullable=True)
    # Set once the PDF snapshot is in object storage
    pdf_stored_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    contact = relationship(Contact)
    lines = relationship(
        "DocumentLine",
        back_populates="document",
        order_by="DocumentLine.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "reference", name="uq_document_tenant_reference"),
    )

    @property
    def contact_name(self):
        return self.contact.display_name if self.contact else None


class DocumentLine(Base):
    __tablename__ = "document_lines"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    description = Column(Text, nullable=False)
    quantity = Column(Numeric(15, 4), nullable=False)
    unit = Column(String(50), nullable=True)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total = Column(Numeric(15, 2), nullable=False)  # quantity * unit_price
    fiscal_category = Column(Enum(FiscalCategory), nullable=False)

    document = relationship("Document", back_populates="lines")
