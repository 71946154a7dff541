"""
URSSAF dashboard: income per fiscal category and annual threshold alerts
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import AsyncIterator, Dict, List, Optional, Tuple
from uuid import UUID
import calendar
import csv
import io
import logging

from skuld.common.enums import FiscalCategory
from skuld.common.exceptions import ValidationError
from skuld.modules.dashboard.schemas import ThresholdAlert, UrssafSummary
from skuld.modules.transactions.models import Transaction, TransactionDirection

logger = logging.getLogger(__name__)

# Annual turnover ceilings of the micro-entrepreneur regime
URSSAF_THRESHOLDS = {
    FiscalCategory.BIC_VENTE: 188700,
    FiscalCategory.BIC_PRESTA: 77700,
    FiscalCategory.BNC: 77700,
}
URSSAF_WARNING_PERCENT = 80

CSV_COLUMNS = ["Date", "Label", "Direction", "Amount", "FiscalCategory", "PaymentMethod", "Notes"]
DIRECTION_LABELS = {
    TransactionDirection.INCOME: "Recette",
    TransactionDirection.EXPENSE: "Dépense",
}

ZERO = Decimal("0")


def period_bounds(year: int, month: int, quarterly: bool = False) -> Tuple[str, date, date]:
    """Label and first/last day of the month, or of the quarter containing it"""
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", errors={"month": "range"})

    if quarterly:
        quarter = (month + 2) // 3
        start_month = (quarter - 1) * 3 + 1
        end_month = start_month + 2
        label = f"T{quarter} {year}"
    else:
        start_month = end_month = month
        label = f"{month:02d}/{year}"

    last_day = calendar.monthrange(year, end_month)[1]
    return label, date(year, start_month, 1), date(year, end_month, last_day)


def threshold_alerts(yearly_totals: Dict[FiscalCategory, Decimal]) -> List[ThresholdAlert]:
    """Alert for every category whose yearly income reached 80% of its ceiling"""
    alerts = []
    for category, threshold in URSSAF_THRESHOLDS.items():
        current = yearly_totals.get(category, ZERO)
        ratio_percent = current * 100 / threshold
        if ratio_percent < URSSAF_WARNING_PERCENT:
            continue
        percent = int(ratio_percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        alerts.append(ThresholdAlert(
            category=category,
            threshold=threshold,
            current=current,
            percent=percent,
            exceeded=percent >= 100,
        ))
    return alerts


def format_csv_amount(amount) -> str:
    """1500.50 -> "1500,5": no trailing zeros, comma decimal separator"""
    value = Decimal(str(amount)).normalize()
    return format(value, "f").replace(".", ",")


def csv_line(cells: List[str], quoting: int = csv.QUOTE_MINIMAL) -> str:
    """One semicolon separated line, without terminator"""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=";", quoting=quoting, lineterminator="")
    writer.writerow(cells)
    return output.getvalue()


CSV_HEADER = csv_line(CSV_COLUMNS)


def csv_row(transaction) -> str:
    """Every cell of a data row is quoted, inner quotes doubled"""
    return csv_line([
        transaction.date.isoformat(),
        transaction.label or "",
        DIRECTION_LABELS[transaction.direction],
        format_csv_amount(transaction.amount),
        transaction.fiscal_category.value if transaction.fiscal_category else "",
        transaction.payment_method.value if transaction.payment_method else "",
        transaction.notes or "",
    ], quoting=csv.QUOTE_ALL)


class TaxAggregator:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _income_by_category(self, tenant_id: UUID, start: date, end: date) -> Dict[FiscalCategory, Decimal]:
        result = await self.db.execute(
            select(Transaction.fiscal_category, func.sum(Transaction.amount))
            .where(
                Transaction.tenant_id == tenant_id,
                Transaction.direction == TransactionDirection.INCOME,
                Transaction.fiscal_category.is_not(None),
                Transaction.date >= start,
                Transaction.date <= end,
            )
            .group_by(Transaction.fiscal_category)
        )
        return {category: Decimal(str(total or 0)) for category, total in result.all()}

    async def compute_period(
        self,
        tenant_id: UUID,
        year: int,
        month: int,
        quarterly: bool = False,
    ) -> UrssafSummary:
        label, start, end = period_bounds(year, month, quarterly)

        period_totals = await self._income_by_category(tenant_id, start, end)
        yearly_totals = await self._income_by_category(tenant_id, date(year, 1, 1), date(year, 12, 31))

        alerts = threshold_alerts(yearly_totals)
        if alerts:
            logger.info(f"Tenant {tenant_id}: {len(alerts)} URSSAF threshold alert(s) for {year}")

        return UrssafSummary(
            period=label,
            start_date=start,
            end_date=end,
            bic_vente=period_totals.get(FiscalCategory.BIC_VENTE, ZERO),
            bic_presta=period_totals.get(FiscalCategory.BIC_PRESTA, ZERO),
            bnc=period_totals.get(FiscalCategory.BNC, ZERO),
            yearly_bic_vente=yearly_totals.get(FiscalCategory.BIC_VENTE, ZERO),
            yearly_bic_presta=yearly_totals.get(FiscalCategory.BIC_PRESTA, ZERO),
            yearly_bnc=yearly_totals.get(FiscalCategory.BNC, ZERO),
            alerts=alerts,
        )

    async def export_csv(
        self,
        tenant_id: UUID,
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> AsyncIterator[str]:
        """CSV lines of every transaction in the range, ordered by date.

        The query runs before the first line is produced.
        """
        if start_date is None or end_date is None:
            raise ValidationError(
                "start_date and end_date are required",
                errors={"dates": "start_date and end_date are required"},
            )

        result = await self.db.execute(
            select(Transaction)
            .where(
                Transaction.tenant_id == tenant_id,
                Transaction.date >= start_date,
                Transaction.date <= end_date,
            )
            .order_by(Transaction.date, Transaction.created_at)
        )
        transactions = list(result.scalars().all())
        logger.info(f"CSV export {start_date}..{end_date}: {len(transactions)} transaction(s)")

        async def lines():
            yield CSV_HEADER
            for transaction in transactions:
                yield "\n" + csv_row(transaction)

        return lines()
