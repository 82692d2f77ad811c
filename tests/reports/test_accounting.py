"""Tests for accounting report queries."""

from datetime import date

import pytest

from bi_dashboard.reports.accounting import (
    ap_aging_query,
    balance_sheet_query,
    expense_breakdown_query,
    get_ap_aging,
    get_balance_sheet,
    get_revenue_expense_breakdown,
    revenue_breakdown_query,
)

START = date(2024, 1, 1)
END = date(2024, 12, 31)


class TestQueryBuilders:
    """Tests for accounting query construction."""

    def test_balance_sheet_signs(self):
        sql, params = balance_sheet_query(END)

        assert "if(account_type = 'ASSETS', sum(debit - credit), sum(credit - debit))" in sql
        assert "toDate(doc_datetime) <= %(asOfDate)s" in sql
        assert params == {"asOfDate": END}

    def test_ap_aging_buckets(self):
        sql, params = ap_aging_query(["HQ"])

        for bucket in ("Not due", "1-30 days", "31-60 days", "61-90 days", "Over 90 days"):
            assert f"'{bucket}'" in sql
        assert "doc_type = 'CREDIT'" in sql
        assert sql.rstrip().endswith("LIMIT 100")
        assert params == {"branchSync": "HQ"}

    def test_breakdown_sides(self):
        revenue_sql, _ = revenue_breakdown_query(START, END)
        expense_sql, params = expense_breakdown_query(START, END, ["HQ", "B02"])

        assert "account_type = 'INCOME'" in revenue_sql
        assert "sum(credit - debit)" in revenue_sql
        assert "account_type = 'EXPENSES'" in expense_sql
        assert "sum(debit - credit)" in expense_sql
        assert expense_sql.count("branch_sync IN %(branchList)s") == 2
        assert params == {"startDate": START, "endDate": END, "branchList": ("HQ", "B02")}


class TestFetchers:
    """Tests for accounting fetchers."""

    @pytest.mark.asyncio
    async def test_balance_sheet(self, mock_warehouse):
        mock_warehouse.query.return_value = [
            {"accountType": "1", "typeName": "Assets", "accountCode": "1100",
             "accountName": "Cash", "balance": "2500.75"},
        ]

        rows = await get_balance_sheet(mock_warehouse, END)

        assert rows[0]["balance"] == 2500.75
        assert rows[0]["typeName"] == "Assets"

    @pytest.mark.asyncio
    async def test_ap_aging(self, mock_warehouse):
        mock_warehouse.query.return_value = [
            {"code": "S01", "name": "Acme", "docNo": "PO-1", "totalAmount": "1000", "paidAmount": "250",
             "outstanding": "750", "daysOverdue": "45", "agingBucket": "31-60 days"},
        ]

        rows = await get_ap_aging(mock_warehouse)

        assert rows[0]["outstanding"] == 750.0
        assert rows[0]["daysOverdue"] == 45.0
        assert rows[0]["agingBucket"] == "31-60 days"

    @pytest.mark.asyncio
    async def test_revenue_expense_breakdown(self, mock_warehouse):
        mock_warehouse.query.side_effect = [
            [{"accountGroup": "41", "accountName": "Sales", "amount": "9000", "percentage": "90"}],
            [{"accountGroup": "51", "accountName": "Rent", "amount": "1200", "percentage": None}],
        ]

        result = await get_revenue_expense_breakdown(mock_warehouse, START, END)

        assert result == {
            "revenue": [{"accountGroup": "41", "accountName": "Sales", "amount": 9000.0, "percentage": 90.0}],
            "expenses": [{"accountGroup": "51", "accountName": "Rent", "amount": 1200.0, "percentage": 0.0}],
        }
        assert mock_warehouse.query.await_count == 2
