"""
Validation of uploaded files before they reach the object store
"""
from dataclasses import dataclass
from typing import Iterable, Optional
from uuid import uuid4

from fastapi import UploadFile

from skuld.common.exceptions import ValidationError


@dataclass
class ValidatedUpload:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


async def read_upload(
    file: Optional[UploadFile],
    allowed_types: Iterable[str],
    max_size: int,
) -> ValidatedUpload:
    """Read an upload and check its MIME type and size"""
    if file is None or not file.filename:
        raise ValidationError("No file provided", errors={"file": "required"})

    allowed = list(allowed_types)
    content_type = file.content_type or "application/octet-stream"
    if content_type not in allowed:
        raise ValidationError(
            f"File type not allowed ({content_type}). Accepted: {', '.join(allowed)}",
            errors={"file": "type"},
        )

    data = await file.read()
    if len(data) > max_size:
        raise ValidationError(
            f"File exceeds the maximum size of {max_size // (1024 * 1024)} MB",
            errors={"file": "size"},
        )

    return ValidatedUpload(filename=file.filename, content_type=content_type, data=data)


def object_key(prefix: str, owner_id, filename: str) -> str:
    """Key of the form {prefix}/{owner_id}/{uuid}-{filename}"""
    return f"{prefix}/{owner_id}/{uuid4()}-{filename}"
