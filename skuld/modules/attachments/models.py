from skuld.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from skuld.common.mixins import TenantMixin, TimestampMixin


class Attachment(Base, TenantMixin, TimestampMixin):
    """Receipt or other supporting file attached to a transaction"""
    __tablename__ = "attachments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    transaction_id = Column(UUID(as_uuid=True), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    file_url = Column(String(1000), nullable=False)  # Object store key
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)

    transaction = relationship("Transaction", back_populates="attachments")
