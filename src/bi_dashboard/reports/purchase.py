"""Purchase report queries over ``purchase_transaction`` and its detail lines."""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..core.warehouse import ClickHouseClient
from .filters import Query, build_branch_filter, date_range_params, numeric_fields

CATEGORY_LIMIT = 15


def purchase_by_category_query(start_date: date, end_date: date, branches=None) -> Query:
    branch_sql, params = build_branch_filter(branches, column="pt.branch_sync")
    sql = f"""SELECT
  ptd.item_category_code AS categoryCode,
  ptd.item_category_name AS categoryName,
  sum(ptd.qty) AS totalQty,
  sum(ptd.sum_amount) AS totalPurchaseValue,
  count(DISTINCT ptd.item_code) AS uniqueItems
FROM purchase_transaction_detail ptd
JOIN purchase_transaction pt ON ptd.doc_no = pt.doc_no AND ptd.branch_sync = pt.branch_sync
WHERE pt.status_cancel != 'Cancel'
  AND toDate(pt.doc_datetime) BETWEEN %(startDate)s AND %(endDate)s
  AND ptd.item_category_name != ''
  {branch_sql}
GROUP BY ptd.item_category_code, ptd.item_category_name
ORDER BY totalPurchaseValue DESC
LIMIT {CATEGORY_LIMIT}"""
    return sql, {**date_range_params(start_date, end_date), **params}


async def get_purchase_by_category(
    warehouse: ClickHouseClient,
    start_date: date,
    end_date: date,
    branches: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    sql, params = purchase_by_category_query(start_date, end_date, branches)
    rows = await warehouse.query(sql, params)
    return [numeric_fields(row, ("totalQty", "totalPurchaseValue", "uniqueItems")) for row in rows]
