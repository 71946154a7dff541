from skuld.database.database import Base
from sqlalchemy import Column, String, Boolean, ForeignKey, Numeric, Enum, Date, Text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from skuld.common.mixins import BaseMixin
from skuld.common.enums import FiscalCategory, PaymentMethod
from skuld.modules.contacts.models import Contact
from skuld.modules.proofs.models import ProofBundle
from skuld.modules.attachments.models import Attachment
import enum


class TransactionDirection(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Transaction(Base, BaseMixin):
    """Cash ledger entry"""
    __tablename__ = "transactions"

    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    direction = Column(Enum(TransactionDirection), nullable=False)
    label = Column(String(500), nullable=False)
    fiscal_category = Column(Enum(FiscalCategory), nullable=True)
    payment_method = Column(Enum(PaymentMethod), nullable=True)

    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.id", ondelete="SET NULL"), nullable=True, index=True)
    contact_id = Column(UUID(as_uuid=True), ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)

    is_second_hand = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    # Relationships
    contact = relationship(Contact)
    proof_bundle = relationship(
        ProofBundle,
        back_populates="transaction",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    attachments = relationship(
        Attachment,
        back_populates="transaction",
        order_by=Attachment.created_at,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def contact_name(self):
        return self.contact.display_name if self.contact else None

    @property
    def proof_complete(self):
        return self.proof_bundle.is_complete if self.proof_bundle else None
