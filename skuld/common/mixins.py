"""
Common mixins for tenant-scoped models
"""
from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from uuid import uuid4


class TenantMixin:
    """Mixin for tenant-scoped models. Every query must filter on tenant_id."""

    tenant_id = Column(UUID(as_uuid=True), nullable=False, index=True)


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class BaseMixin(TenantMixin, TimestampMixin):
    """Combines id, tenant and timestamp columns for most business models"""

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
