from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from skuld.modules.files.storage import MinIOStorage


@lru_cache
def get_object_store() -> MinIOStorage:
    """Process-wide object store, created on first use"""
    return MinIOStorage()


object_store_dependency = Annotated[MinIOStorage, Depends(get_object_store)]
