"""
Router for the Transactions module
"""

from fastapi import APIRouter, Depends, Query, Path, status
from typing import Optional
from uuid import UUID
from datetime import date

from skuld.common.enums import FiscalCategory
from skuld.common.pagination import Page, PageParams, page_params, build_page
from skuld.dependencies.auth import auth_dependency
from skuld.dependencies.dbDependencies import async_db_dependency
from skuld.modules.files.dependencies import object_store_dependency
from skuld.modules.transactions.models import TransactionDirection
from skuld.modules.transactions.schemas import (
    TransactionCreate, TransactionUpdate, TransactionDetail, TransactionListItem, TransactionFilters
)
from skuld.modules.transactions.service import LedgerRecorder

router = APIRouter(
    prefix="/transactions",
    tags=["Transactions"],
    responses={404: {"description": "Not found"}}
)


@router.get("", response_model=Page[TransactionListItem])
async def list_transactions(
    db: async_db_dependency,
    auth: auth_dependency,
    params: PageParams = Depends(page_params),
    direction: Optional[TransactionDirection] = Query(None, description="INCOME or EXPENSE"),
    fiscal_category: Optional[FiscalCategory] = Query(None),
    start_date: Optional[date] = Query(None, description="From (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="To (YYYY-MM-DD)"),
):
    """List transactions, most recent first"""
    filters = TransactionFilters(
        direction=direction, fiscal_category=fiscal_category, start_date=start_date, end_date=end_date
    )
    transactions, total = await LedgerRecorder(db).list_transactions(auth.tenant_id, filters, params)
    return build_page(TransactionListItem, transactions, params, total)


@router.post("", response_model=TransactionDetail, status_code=status.HTTP_201_CREATED)
async def create_transaction(transaction_data: TransactionCreate, db: async_db_dependency, auth: auth_dependency):
    """
    Record a transaction.

    Second-hand purchases (``is_second_hand``) get an empty proof bundle.
    """
    return await LedgerRecorder(db).create_transaction(auth.tenant_id, transaction_data)


@router.get("/{transaction_id}", response_model=TransactionDetail)
async def get_transaction(db: async_db_dependency, auth: auth_dependency, transaction_id: UUID = Path(...)):
    return await LedgerRecorder(db).get_transaction(auth.tenant_id, transaction_id)


@router.put("/{transaction_id}", response_model=TransactionDetail)
async def update_transaction(
    patch: TransactionUpdate,
    db: async_db_dependency,
    auth: auth_dependency,
    transaction_id: UUID = Path(...),
):
    return await LedgerRecorder(db).update_transaction(auth.tenant_id, transaction_id, patch)


@router.delete("/{transaction_id}")
async def delete_transaction(
    db: async_db_dependency,
    auth: auth_dependency,
    storage: object_store_dependency,
    transaction_id: UUID = Path(...),
):
    """Delete a transaction along with its proofs and attachments"""
    return await LedgerRecorder(db, storage).delete_transaction(auth.tenant_id, transaction_id)
