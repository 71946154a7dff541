"""
Tests for the URSSAF dashboard: period aggregation, threshold alerts and CSV export
"""

import pytest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from skuld.common.enums import FiscalCategory, PaymentMethod
from skuld.common.exceptions import ValidationError
from skuld.modules.transactions.models import TransactionDirection
from skuld.modules.dashboard.service import (
    CSV_HEADER, csv_row, format_csv_amount, period_bounds, threshold_alerts,
)


# ===== FIXTURES =====

@pytest.fixture
def record(client):
    async def create(day, amount, direction="INCOME", fiscal_category="BIC_VENTE", **extra):
        payload = {
            "date": day,
            "amount": amount,
            "direction": direction,
            "label": extra.pop("label", "Vente"),
            "fiscal_category": fiscal_category,
        }
        payload.update(extra)
        response = await client.post("/transactions", json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return create


# ===== PERIODS =====

class TestPeriodBounds:

    def test_month(self):
        assert period_bounds(2025, 2) == ("02/2025", date(2025, 2, 1), date(2025, 2, 28))
        assert period_bounds(2024, 2) == ("02/2024", date(2024, 2, 1), date(2024, 2, 29))

    @pytest.mark.parametrize("month,label,start,end", [
        (1, "T1 2025", date(2025, 1, 1), date(2025, 3, 31)),
        (5, "T2 2025", date(2025, 4, 1), date(2025, 6, 30)),
        (9, "T3 2025", date(2025, 7, 1), date(2025, 9, 30)),
        (12, "T4 2025", date(2025, 10, 1), date(2025, 12, 31)),
    ])
    def test_quarter_containing_month(self, month, label, start, end):
        assert period_bounds(2025, month, quarterly=True) == (label, start, end)

    def test_invalid_month(self):
        with pytest.raises(ValidationError):
            period_bounds(2025, 13)


# ===== THRESHOLDS =====

class TestThresholdAlerts:

    def test_warning_at_eighty_percent(self):
        alerts = threshold_alerts({FiscalCategory.BIC_PRESTA: Decimal("62160")})

        assert len(alerts) == 1
        assert alerts[0].category == FiscalCategory.BIC_PRESTA
        assert alerts[0].threshold == 77700
        assert alerts[0].percent == 80
        assert alerts[0].exceeded is False

    def test_ceiling_reached(self):
        alerts = threshold_alerts({FiscalCategory.BIC_VENTE: Decimal("188700")})
        assert [(alert.percent, alert.exceeded) for alert in alerts] == [(100, True)]

    def test_below_warning(self):
        assert threshold_alerts({FiscalCategory.BIC_VENTE: Decimal("90000")}) == []
        assert threshold_alerts({}) == []

    def test_exceeded_uses_rounded_percent(self):
        alerts = threshold_alerts({FiscalCategory.BNC: Decimal("77350")})
        assert alerts[0].percent == 100
        assert alerts[0].exceeded is True

    def test_one_alert_per_category(self):
        alerts = threshold_alerts({
            FiscalCategory.BIC_VENTE: Decimal("160000"),
            FiscalCategory.BIC_PRESTA: Decimal("10000"),
            FiscalCategory.BNC: Decimal("80000"),
        })
        assert [alert.category for alert in alerts] == [FiscalCategory.BIC_VENTE, FiscalCategory.BNC]
        assert [alert.percent for alert in alerts] == [85, 103]


# ===== AGGREGATION =====

class TestUrssafSummary:

    async def test_month_totals(self, client, record):
        await record("2025-02-03", "5000")
        await record("2025-02-17", "3000")
        await record("2025-02-20", "2000", fiscal_category="BIC_PRESTA")
        await record("2025-02-21", "700", direction="EXPENSE")
        await record("2025-03-01", "400")

        response = await client.get("/dashboard/urssaf", params={"year": 2025, "month": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["period"] == "02/2025"
        assert Decimal(body["bic_vente"]) == Decimal("8000")
        assert Decimal(body["bic_presta"]) == Decimal("2000")
        assert Decimal(body["bnc"]) == Decimal("0")
        assert Decimal(body["yearly_bic_vente"]) == Decimal("8400")
        assert body["alerts"] == []

    async def test_quarter_and_alerts(self, client, record):
        await record("2025-01-10", "60000", fiscal_category="BIC_PRESTA")
        await record("2025-05-10", "2160", fiscal_category="BIC_PRESTA")
        await record("2024-12-31", "50000", fiscal_category="BIC_PRESTA")

        body = (await client.get("/dashboard/urssaf", params={
            "year": 2025, "month": 5, "quarterly": True,
        })).json()

        assert body["period"] == "T2 2025"
        assert body["start_date"] == "2025-04-01"
        assert body["end_date"] == "2025-06-30"
        assert Decimal(body["bic_presta"]) == Decimal("2160")
        assert Decimal(body["yearly_bic_presta"]) == Decimal("62160")
        assert len(body["alerts"]) == 1
        assert body["alerts"][0]["category"] == "BIC_PRESTA"
        assert body["alerts"][0]["percent"] == 80
        assert body["alerts"][0]["exceeded"] is False

    async def test_uncategorized_income_is_ignored(self, client, record):
        await record("2025-02-03", "1000", fiscal_category=None)

        body = (await client.get("/dashboard/urssaf", params={"year": 2025, "month": 2})).json()

        assert Decimal(body["bic_vente"]) + Decimal(body["bic_presta"]) + Decimal(body["bnc"]) == 0

    @pytest.mark.parametrize("params", [
        {"year": 2025, "month": 13},
        {"year": 2025, "month": 0},
        {"year": 0, "month": 1},
        {"year": 10000, "month": 1},
    ])
    async def test_invalid_period(self, client, params):
        response = await client.get("/dashboard/urssaf", params=params)
        assert response.status_code == 422

    async def test_year_defaults_to_current(self, client):
        response = await client.get("/dashboard/urssaf", params={"month": 1})

        assert response.status_code == 200
        assert response.json()["period"] == f"01/{date.today().year}"


# ===== CSV =====

class TestCsvExport:

    def test_amount_format(self):
        assert format_csv_amount(Decimal("1500.50")) == "1500,5"
        assert format_csv_amount(Decimal("100.00")) == "100"
        assert format_csv_amount(Decimal("0.05")) == "0,05"

    def test_header(self):
        assert CSV_HEADER == "Date;Label;Direction;Amount;FiscalCategory;PaymentMethod;Notes"

    def test_row_quotes_every_cell(self):
        transaction = SimpleNamespace(
            date=date(2025, 1, 15), label='Table "Louis XV"; lot 2', direction=TransactionDirection.EXPENSE,
            amount=Decimal("250.00"), fiscal_category=None, payment_method=PaymentMethod.CASH, notes=None,
        )

        assert csv_row(transaction) == '"2025-01-15";"Table ""Louis XV""; lot 2";"Dépense";"250";"";"CASH";""'

    async def test_export(self, client, record):
        await record("2025-01-20", "89.90", direction="EXPENSE", fiscal_category=None,
                     label="Fournitures", payment_method="CARD")
        await record("2025-01-15", "1500.50", fiscal_category="BIC_PRESTA", label="Web service",
                     payment_method="BANK_TRANSFER", notes='Refonte "vitrine"')
        await record("2025-02-15", "10", label="Hors periode")

        response = await client.get("/dashboard/urssaf/export", params={
            "start_date": "2025-01-01", "end_date": "2025-01-31",
        })

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/csv; charset=utf-8"
        assert response.headers["content-disposition"] == (
            'attachment; filename="skuld-export-2025-01-01-2025-01-31.csv"'
        )
        lines = response.text.split("\n")
        assert lines[0] == CSV_HEADER
        assert lines[1] == '"2025-01-15";"Web service";"Recette";"1500,5";"BIC_PRESTA";"BANK_TRANSFER";"Refonte ""vitrine"""'
        assert lines[2] == '"2025-01-20";"Fournitures";"Dépense";"89,9";"";"CARD";""'
        assert len(lines) == 3

    async def test_export_requires_both_dates(self, client):
        response = await client.get("/dashboard/urssaf/export", params={"start_date": "2025-01-01"})

        assert response.status_code == 422
        assert response.json()["detail"] == "start_date and end_date are required"
