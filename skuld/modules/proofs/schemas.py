from pydantic import BaseModel
from typing import List
from uuid import UUID
from datetime import datetime

from skuld.modules.proofs.models import ProofType


class ProofOut(BaseModel):
    id: UUID
    bundle_id: UUID
    type: ProofType
    file_url: str
    file_name: str
    file_size: int
    mime_type: str
    created_at: datetime

    class Config:
        from_attributes = True


class ProofBundleOut(BaseModel):
    id: UUID
    transaction_id: UUID
    has_ad: bool
    has_payment: bool
    has_cession: bool
    is_complete: bool
    proofs: List[ProofOut] = []

    class Config:
        from_attributes = True
