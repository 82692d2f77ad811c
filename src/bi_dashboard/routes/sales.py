"""Sales and purchase report routes."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query

from ..core.warehouse import ClickHouseClient, WarehouseError
from ..reports import purchase, sales
from .responses import check_date_range, error_response, success_response

START_DATE = Query(None, description="Period start (YYYY-MM-DD)")
END_DATE = Query(None, description="Period end (YYYY-MM-DD), inclusive")
BRANCH = Query(None, description="Branch filter; repeat or comma-join, ALL for every branch")


def create_sales_router(warehouse: ClickHouseClient) -> APIRouter:
    """Create router for sales and purchase reports."""
    router = APIRouter(prefix="/api", tags=["sales"])

    @router.get("/sales/by-branch")
    async def sales_by_branch(
        start_date: Optional[date] = START_DATE,
        end_date: Optional[date] = END_DATE,
        branch: Optional[List[str]] = BRANCH,
    ):
        invalid = check_date_range(start_date, end_date)
        if invalid is not None:
            return invalid
        try:
            data = await sales.get_sales_by_branch(warehouse, start_date, end_date, branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/sales/by-branch")
        return success_response(data)

    @router.get("/sales-chart")
    async def sales_chart(
        branch: Optional[List[str]] = BRANCH,
        days: int = Query(sales.SALES_CHART_DAYS, ge=1, le=366, description="Days back from today"),
    ):
        try:
            data = await sales.get_sales_chart(warehouse, branch, days=days)
        except WarehouseError as e:
            return error_response(e, "GET /api/sales-chart")
        return success_response(data)

    @router.get("/purchase/by-category")
    async def purchase_by_category(
        start_date: Optional[date] = START_DATE,
        end_date: Optional[date] = END_DATE,
        branch: Optional[List[str]] = BRANCH,
    ):
        invalid = check_date_range(start_date, end_date)
        if invalid is not None:
            return invalid
        try:
            data = await purchase.get_purchase_by_category(warehouse, start_date, end_date, branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/purchase/by-category")
        return success_response(data)

    return router
