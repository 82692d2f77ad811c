"""Inventory report queries over ``stock_transaction``.

Stock on hand is the running sum of ``qty`` (positive for receipts, negative
for issues) up to the as-of date.
"""

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..core.warehouse import ClickHouseClient
from .filters import Query, build_branch_filter, date_range_params, numeric_fields, to_number

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 10
OVERSTOCK_THRESHOLD = 1000
ITEM_LIST_LIMIT = 50
SLOW_MOVING_DAYS = 90
# Reported when an item had no sales in the period
NO_SALES_DAYS_OF_STOCK = 999


def _stock_per_item(select: str, having: str, as_of_date: date, branches) -> Query:
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  {select}
FROM (
  SELECT
    item_code,
    sum(qty) AS total_qty,
    sum(qty * cost) AS total_value
  FROM stock_transaction
  WHERE toDate(doc_datetime) <= %(asOfDate)s
  {branch_sql}
  GROUP BY item_code
  HAVING {having}
)"""
    return sql, {"asOfDate": as_of_date, **params}


def inventory_value_query(as_of_date: date, branches=None) -> Query:
    return _stock_per_item("sum(total_value) AS current_value", "total_qty > 0", as_of_date, branches)


def items_in_stock_query(as_of_date: date, branches=None) -> Query:
    return _stock_per_item("count() AS current_value", "total_qty > 0", as_of_date, branches)


def low_stock_count_query(as_of_date: date, branches=None) -> Query:
    return _stock_per_item(
        "count() AS current_value",
        f"total_qty > 0 AND total_qty <= {LOW_STOCK_THRESHOLD}",
        as_of_date,
        branches,
    )


def overstock_count_query(as_of_date: date, branches=None) -> Query:
    return _stock_per_item(
        "count() AS current_value",
        f"total_qty > {OVERSTOCK_THRESHOLD}",
        as_of_date,
        branches,
    )


def low_stock_items_query(as_of_date: date, branches=None) -> Query:
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  item_code AS itemCode,
  any(item_name) AS itemName,
  any(item_category_name) AS categoryName,
  any(item_brand_name) AS brandName,
  any(wh_name) AS branchName,
  sum(qty) AS currentStock,
  {LOW_STOCK_THRESHOLD} AS reorderPoint,
  if(sum(qty) > 0, sum(qty * cost) / sum(qty), 0) AS costAvg
FROM stock_transaction
WHERE toDate(doc_datetime) <= %(asOfDate)s
{branch_sql}
GROUP BY item_code
HAVING currentStock > 0 AND currentStock <= {LOW_STOCK_THRESHOLD}
ORDER BY currentStock ASC
LIMIT {ITEM_LIST_LIMIT}"""
    return sql, {"asOfDate": as_of_date, **params}


def overstock_items_query(as_of_date: date, branches=None) -> Query:
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  item_code AS itemCode,
  any(item_name) AS itemName,
  any(item_category_name) AS categoryName,
  any(item_brand_name) AS brandName,
  any(wh_name) AS branchName,
  sum(qty) AS currentStock,
  {OVERSTOCK_THRESHOLD} AS maxStockLevel,
  if(sum(qty) > 0, sum(qty * cost) / sum(qty), 0) AS costAvg
FROM stock_transaction
WHERE toDate(doc_datetime) <= %(asOfDate)s
{branch_sql}
GROUP BY item_code
HAVING currentStock > {OVERSTOCK_THRESHOLD}
ORDER BY currentStock DESC
LIMIT {ITEM_LIST_LIMIT}"""
    return sql, {"asOfDate": as_of_date, **params}


def slow_moving_items_query(start_date: date, end_date: date, as_of_date: date, branches=None) -> Query:
    """Items in stock whose sales over the period would take more than 90 days to clear them."""
    stock_branch_sql, params = build_branch_filter(branches)
    sales_branch_sql, _ = build_branch_filter(branches, column="si.branch_sync")
    sql = f"""SELECT
  stock.item_code AS itemCode,
  stock.item_name AS itemName,
  stock.categoryName AS categoryName,
  stock.brandName AS brandName,
  stock.currentStock AS currentStock,
  stock.costAvg AS costAvg,
  stock.stockValue AS stockValue,
  coalesce(sales.qty_sold, 0) AS qtySold,
  greatest(dateDiff('day', toDate(%(startDate)s), toDate(%(endDate)s)), 1) AS daysPeriod,
  if(qtySold > 0, stock.currentStock / (qtySold / daysPeriod), {NO_SALES_DAYS_OF_STOCK}) AS daysOfStock
FROM (
  SELECT
    item_code,
    any(item_name) AS item_name,
    any(item_category_name) AS categoryName,
    any(item_brand_name) AS brandName,
    sum(qty) AS currentStock,
    if(sum(qty) > 0, sum(qty * cost) / sum(qty), 0) AS costAvg,
    sum(qty * cost) AS stockValue
  FROM stock_transaction
  WHERE toDate(doc_datetime) <= %(asOfDate)s
  {stock_branch_sql}
  GROUP BY item_code
  HAVING currentStock > 0
) stock
LEFT JOIN (
  SELECT
    sid.item_code,
    sum(sid.qty) AS qty_sold
  FROM saleinvoice_transaction_detail sid
  JOIN saleinvoice_transaction si ON sid.doc_no = si.doc_no AND sid.branch_sync = si.branch_sync
  WHERE si.status_cancel != 'Cancel'
    AND toDate(si.doc_datetime) BETWEEN %(startDate)s AND %(endDate)s
    {sales_branch_sql}
  GROUP BY sid.item_code
) sales ON stock.item_code = sales.item_code
WHERE daysOfStock > {SLOW_MOVING_DAYS}
ORDER BY stockValue DESC
LIMIT {ITEM_LIST_LIMIT}"""
    return sql, {"asOfDate": as_of_date, **date_range_params(start_date, end_date), **params}


def stock_by_branch_query(as_of_date: date, branches=None) -> Query:
    branch_sql, params = build_branch_filter(branches)
    sql = f"""SELECT
  wh_code AS branchCode,
  any(wh_name) AS branchName,
  count(DISTINCT item_code) AS itemCount,
  sum(qty) AS qtyOnHand,
  sum(qty * cost) AS inventoryValue
FROM stock_transaction
WHERE toDate(doc_datetime) <= %(asOfDate)s
  AND wh_code != ''
{branch_sql}
GROUP BY wh_code
HAVING qtyOnHand > 0
ORDER BY inventoryValue DESC"""
    return sql, {"asOfDate": as_of_date, **params}


async def get_inventory_kpis(
    warehouse: ClickHouseClient,
    as_of_date: date,
    branches: Optional[Sequence[str]] = None,
) -> Dict[str, Dict[str, float]]:
    """Inventory value, items in stock, low-stock and overstock counts."""
    queries = {
        "totalInventoryValue": inventory_value_query(as_of_date, branches),
        "totalItemsInStock": items_in_stock_query(as_of_date, branches),
        "lowStockItems": low_stock_count_query(as_of_date, branches),
        "overstockItems": overstock_count_query(as_of_date, branches),
    }
    results = await asyncio.gather(
        *(warehouse.query(sql, params) for sql, params in queries.values())
    )

    kpis = {}
    for name, rows in zip(queries, results):
        value = to_number(rows[0].get("current_value")) if rows else 0.0
        kpis[name] = {"value": value}
    logger.debug(f"Inventory KPIs as of {as_of_date}: {kpis}")
    return kpis


def _with_branch_name(row: Dict[str, Any]) -> Dict[str, Any]:
    if not row.get("branchName"):
        row["branchName"] = "-"
    return row


async def get_low_stock_items(
    warehouse: ClickHouseClient,
    as_of_date: date,
    branches: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    sql, params = low_stock_items_query(as_of_date, branches)
    rows = await warehouse.query(sql, params)
    return [
        _with_branch_name(numeric_fields(row, ("currentStock", "reorderPoint", "costAvg")))
        for row in rows
    ]


async def get_overstock_items(
    warehouse: ClickHouseClient,
    as_of_date: date,
    branches: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    sql, params = overstock_items_query(as_of_date, branches)
    rows = await warehouse.query(sql, params)
    return [
        _with_branch_name(numeric_fields(row, ("currentStock", "maxStockLevel", "costAvg")))
        for row in rows
    ]


async def get_slow_moving_items(
    warehouse: ClickHouseClient,
    start_date: date,
    end_date: date,
    as_of_date: date,
    branches: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    sql, params = slow_moving_items_query(start_date, end_date, as_of_date, branches)
    rows = await warehouse.query(sql, params)
    fields = ("currentStock", "costAvg", "stockValue", "qtySold", "daysPeriod", "daysOfStock")
    return [numeric_fields(row, fields) for row in rows]


async def get_stock_by_branch(
    warehouse: ClickHouseClient,
    as_of_date: date,
    branches: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    sql, params = stock_by_branch_query(as_of_date, branches)
    rows = await warehouse.query(sql, params)
    converted = []
    for row in rows:
        row = numeric_fields(row, ("itemCount", "qtyOnHand", "inventoryValue"))
        row["branchName"] = row.get("branchName") or row.get("branchCode")
        converted.append(row)
    return converted
