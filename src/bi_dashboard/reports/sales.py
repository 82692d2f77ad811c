"""Sales report queries over ``saleinvoice_transaction``.

Cancelled invoices (``status_cancel = 'Cancel'``) are excluded everywhere.
Date ranges are inclusive calendar days.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from ..core.warehouse import ClickHouseClient
from .filters import Query, build_branch_filter, date_range_params, numeric_fields

logger = logging.getLogger(__name__)

SALES_CHART_DAYS = 30


def sales_by_branch_query(start_date: date, end_date: date, branches=None) -> Query:
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  branch_code AS branchCode,
  branch_name AS branchName,
  count(DISTINCT doc_no) AS orderCount,
  sum(total_amount) AS totalSales
FROM saleinvoice_transaction
WHERE status_cancel != 'Cancel'
  AND toDate(doc_datetime) BETWEEN %(startDate)s AND %(endDate)s
  AND branch_code != ''
  {branch_sql}
GROUP BY branch_code, branch_name
ORDER BY totalSales DESC"""
    return sql, {**date_range_params(start_date, end_date), **params}


def sales_trend_query(start_date: date, end_date: date, branches=None) -> Query:
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  toDate(doc_datetime) AS date,
  sum(total_amount) AS sales,
  count(DISTINCT doc_no) AS orderCount
FROM saleinvoice_transaction
WHERE status_cancel != 'Cancel'
  AND toDate(doc_datetime) BETWEEN %(startDate)s AND %(endDate)s
  {branch_sql}
GROUP BY date
ORDER BY date ASC"""
    return sql, {**date_range_params(start_date, end_date), **params}


def chart_window(days: int = SALES_CHART_DAYS, today: Optional[date] = None):
    """Return the ``(start, end)`` of the last ``days`` days, today included."""
    end = today or date.today()
    return end - timedelta(days=days - 1), end


async def get_sales_by_branch(
    warehouse: ClickHouseClient,
    start_date: date,
    end_date: date,
    branches: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    sql, params = sales_by_branch_query(start_date, end_date, branches)
    rows = await warehouse.query(sql, params)
    return [numeric_fields(row, ("orderCount", "totalSales")) for row in rows]


async def get_sales_chart(
    warehouse: ClickHouseClient,
    branches: Optional[Sequence[str]] = None,
    days: int = SALES_CHART_DAYS,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Daily sales and order counts for the last ``days`` days.

    Days without sales are filled with zeros so charts get a continuous axis.
    """
    start, end = chart_window(days, today)
    sql, params = sales_trend_query(start, end, branches)
    rows = await warehouse.query(sql, params)

    by_day = {}
    for row in rows:
        day = row.get("date")
        if isinstance(day, str):
            day = date.fromisoformat(day[:10])
        by_day[day] = numeric_fields(row, ("sales", "orderCount"))

    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        row = by_day.get(day, {"sales": 0.0, "orderCount": 0.0})
        series.append({"date": day, "sales": row["sales"], "orderCount": row["orderCount"]})
    logger.debug(f"Sales chart {start}..{end}: {len(rows)} days with sales")
    return series
