from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Annotated
from skuld.database.database import get_async_db

# Asynchronous database dependency
async_db_dependency = Annotated[AsyncSession, Depends(get_async_db)]
