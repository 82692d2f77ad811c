"""Accounting report queries.

Ledger figures come from ``journal_transaction_detail``, whose
``account_type`` is one of ASSETS, LIABILITIES, EQUITY, INCOME or EXPENSES.
Payables aging reads open credit purchases from ``purchase_transaction``.
"""

import asyncio
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..core.warehouse import ClickHouseClient
from .filters import Query, build_branch_filter, date_range_params, numeric_fields

AGING_LIMIT = 100

AGING_FIELDS = ("totalAmount", "paidAmount", "outstanding", "daysOverdue")
BREAKDOWN_FIELDS = ("amount", "percentage")


def balance_sheet_query(as_of_date: date, branches=None) -> Query:
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  substring(account_code, 1, 1) AS accountType,
  multiIf(
    account_type = 'ASSETS', 'Assets',
    account_type = 'LIABILITIES', 'Liabilities',
    'Equity'
  ) AS typeName,
  account_code AS accountCode,
  any(account_name) AS accountName,
  if(account_type = 'ASSETS', sum(debit - credit), sum(credit - debit)) AS balance
FROM journal_transaction_detail
WHERE account_type IN ('ASSETS', 'LIABILITIES', 'EQUITY')
  AND toDate(doc_datetime) <= %(asOfDate)s
  {branch_sql}
GROUP BY account_type, accountType, typeName, account_code
HAVING balance != 0
ORDER BY account_code ASC"""
    return sql, {"asOfDate": as_of_date, **params}


def ap_aging_query(branches=None) -> Query:
    """Open credit purchases, most overdue first, bucketed by days past due."""
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  supplier_code AS code,
  supplier_name AS name,
  doc_no AS docNo,
  doc_datetime AS docDate,
  due_date AS dueDate,
  total_amount AS totalAmount,
  sum_pay_money AS paidAmount,
  total_amount - sum_pay_money AS outstanding,
  dateDiff('day', due_date, now()) AS daysOverdue,
  multiIf(
    daysOverdue <= 0, 'Not due',
    daysOverdue <= 30, '1-30 days',
    daysOverdue <= 60, '31-60 days',
    daysOverdue <= 90, '61-90 days',
    'Over 90 days'
  ) AS agingBucket
FROM purchase_transaction
WHERE status_payment IN ('Outstanding', 'Partially Paid')
  AND status_cancel != 'Cancel'
  AND doc_type = 'CREDIT'
  {branch_sql}
ORDER BY daysOverdue DESC
LIMIT {AGING_LIMIT}"""
    return sql, params


def _breakdown_query(account_type: str, amount: str, start_date: date, end_date: date, branches) -> Query:
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  substring(account_code, 1, 2) AS accountGroup,
  any(account_name) AS accountName,
  sum({amount}) AS amount,
  amount / (
    SELECT sum({amount})
    FROM journal_transaction_detail
    WHERE account_type = '{account_type}'
      AND toDate(doc_datetime) BETWEEN %(startDate)s AND %(endDate)s
      {branch_sql}
  ) * 100 AS percentage
FROM journal_transaction_detail
WHERE account_type = '{account_type}'
  AND toDate(doc_datetime) BETWEEN %(startDate)s AND %(endDate)s
  {branch_sql}
GROUP BY accountGroup
HAVING amount > 0
ORDER BY amount DESC"""
    return sql, {**date_range_params(start_date, end_date), **params}


def revenue_breakdown_query(start_date: date, end_date: date, branches=None) -> Query:
    return _breakdown_query("INCOME", "credit - debit", start_date, end_date, branches)


def expense_breakdown_query(start_date: date, end_date: date, branches=None) -> Query:
    return _breakdown_query("EXPENSES", "debit - credit", start_date, end_date, branches)


async def get_balance_sheet(
    warehouse: ClickHouseClient,
    as_of_date: date,
    branches: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    sql, params = balance_sheet_query(as_of_date, branches)
    rows = await warehouse.query(sql, params)
    return [numeric_fields(row, ("balance",)) for row in rows]


async def get_ap_aging(
    warehouse: ClickHouseClient,
    branches: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    sql, params = ap_aging_query(branches)
    rows = await warehouse.query(sql, params)
    return [numeric_fields(row, AGING_FIELDS) for row in rows]


async def get_revenue_expense_breakdown(
    warehouse: ClickHouseClient,
    start_date: date,
    end_date: date,
    branches: Optional[Sequence[str]] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Income and expense account groups with their share of the period total."""
    revenue_sql, revenue_params = revenue_breakdown_query(start_date, end_date, branches)
    expense_sql, expense_params = expense_breakdown_query(start_date, end_date, branches)
    revenue, expenses = await asyncio.gather(
        warehouse.query(revenue_sql, revenue_params),
        warehouse.query(expense_sql, expense_params),
    )
    return {
        "revenue": [numeric_fields(row, BREAKDOWN_FIELDS) for row in revenue],
        "expenses": [numeric_fields(row, BREAKDOWN_FIELDS) for row in expenses],
    }
