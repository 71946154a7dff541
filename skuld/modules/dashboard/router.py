"""
Router for the URSSAF dashboard
"""

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse
from typing import Optional
from datetime import date

from skuld.dependencies.auth import auth_dependency
from skuld.dependencies.dbDependencies import async_db_dependency
from skuld.modules.dashboard.schemas import UrssafSummary
from skuld.modules.dashboard.service import TaxAggregator

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/urssaf", response_model=UrssafSummary)
async def get_urssaf_summary(
    db: async_db_dependency,
    auth: auth_dependency,
    year: Optional[int] = Query(None, ge=1, le=9999, description="Defaults to the current year"),
    month: Optional[int] = Query(None, ge=1, le=12, description="Defaults to the current month"),
    quarterly: bool = Query(False, description="Aggregate over the quarter containing the month"),
):
    """
    Income per fiscal category for the declaration period, yearly totals
    and threshold alerts (from 80% of the annual ceiling)
    """
    today = date.today()
    return await TaxAggregator(db).compute_period(
        auth.tenant_id,
        today.year if year is None else year,
        today.month if month is None else month,
        quarterly,
    )


@router.get("/urssaf/export")
async def export_urssaf_csv(
    db: async_db_dependency,
    auth: auth_dependency,
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
):
    """Semicolon separated export of the transactions between two dates"""
    lines = await TaxAggregator(db).export_csv(auth.tenant_id, start_date, end_date)
    return StreamingResponse(
        lines,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="skuld-export-{start_date}-{end_date}.csv"'},
    )
