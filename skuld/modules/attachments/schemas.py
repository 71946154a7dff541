from pydantic import BaseModel
from uuid import UUID
from datetime import datetime


class AttachmentOut(BaseModel):
    id: UUID
    transaction_id: UUID
    file_url: str
    file_name: str
    file_size: int
    mime_type: str
    created_at: datetime

    class Config:
        from_attributes = True
