"""Accounting report routes and the branch list."""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from ..core.warehouse import ClickHouseClient, WarehouseError
from ..reports import accounting
from ..reports.branches import get_branches
from .responses import bad_request, check_date_range, error_response, success_response

logger = logging.getLogger(__name__)

BRANCH = Query(None, description="Branch filter; repeat or comma-join, ALL for every branch")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_accounting_router(warehouse: ClickHouseClient) -> APIRouter:
    """Create router for accounting reports.

    Responses carry a ``timestamp`` next to ``data`` so the dashboard can show
    when the figures were read.
    """
    router = APIRouter(prefix="/api", tags=["accounting"])

    @router.get("/accounting/ap-aging")
    async def ap_aging(branch: Optional[List[str]] = BRANCH):
        try:
            data = await accounting.get_ap_aging(warehouse, branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/accounting/ap-aging")
        return success_response(data, timestamp=_timestamp())

    @router.get("/accounting/balance-sheet")
    async def balance_sheet(
        as_of_date: Optional[date] = Query(None, description="Balance date (YYYY-MM-DD)"),
        branch: Optional[List[str]] = BRANCH,
    ):
        if as_of_date is None:
            return bad_request("as_of_date is required")
        try:
            data = await accounting.get_balance_sheet(warehouse, as_of_date, branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/accounting/balance-sheet")
        return success_response(data, timestamp=_timestamp())

    @router.get("/accounting/revenue-expense-breakdown")
    async def revenue_expense_breakdown(
        start_date: Optional[date] = Query(None, description="Period start (YYYY-MM-DD)"),
        end_date: Optional[date] = Query(None, description="Period end (YYYY-MM-DD), inclusive"),
        branch: Optional[List[str]] = BRANCH,
    ):
        invalid = check_date_range(start_date, end_date)
        if invalid is not None:
            return invalid
        try:
            data = await accounting.get_revenue_expense_breakdown(warehouse, start_date, end_date, branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/accounting/revenue-expense-breakdown")
        return success_response(data, timestamp=_timestamp())

    @router.get("/branches")
    async def branches():
        """List branches, ``ALL`` first. Returns a bare JSON array."""
        try:
            return await get_branches(warehouse)
        except WarehouseError as e:
            logger.error(f"GET /api/branches failed: {e}")
            return JSONResponse(status_code=500, content={"error": "Failed to fetch branches from ClickHouse"})

    return router
