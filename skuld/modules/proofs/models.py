from skuld.database.database import Base
from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from skuld.common.mixins import TenantMixin, TimestampMixin
import enum


class ProofType(str, enum.Enum):
    SCREENSHOT_AD = "SCREENSHOT_AD"    # Screenshot of the listing
    PAYMENT_PROOF = "PAYMENT_PROOF"    # Proof of payment to the seller
    CESSION_CERT = "CESSION_CERT"      # Signed transfer certificate
    INVOICE = "INVOICE"
    OTHER = "OTHER"


# Evidence type -> bundle flag it satisfies
PROOF_FLAGS = {
    ProofType.SCREENSHOT_AD: "has_ad",
    ProofType.PAYMENT_PROOF: "has_payment",
    ProofType.CESSION_CERT: "has_cession",
}


class ProofBundle(Base, TenantMixin, TimestampMixin):
    """Evidence required for a second-hand purchase, owned 1:1 by its transaction"""
    __tablename__ = "proof_bundles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    transaction_id = Column(
        UUID(as_uuid=True), ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False, unique=True
    )
    has_ad = Column(Boolean, nullable=False, default=False)
    has_payment = Column(Boolean, nullable=False, default=False)
    has_cession = Column(Boolean, nullable=False, default=False)

    transaction = relationship("Transaction", back_populates="proof_bundle")
    proofs = relationship(
        "Proof",
        back_populates="bundle",
        order_by="Proof.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_complete(self) -> bool:
        return bool(self.has_ad and self.has_payment and self.has_cession)


class Proof(Base, TenantMixin, TimestampMixin):
    __tablename__ = "proofs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    bundle_id = Column(UUID(as_uuid=True), ForeignKey("proof_bundles.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(ProofType), nullable=False)
    file_url = Column(String(1000), nullable=False)  # Object store key
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)

    bundle = relationship("ProofBundle", back_populates="proofs")
