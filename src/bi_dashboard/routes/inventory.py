"""Inventory report routes."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query

from ..core.warehouse import ClickHouseClient, WarehouseError
from ..reports import inventory
from .responses import check_date_range, error_response, success_response

AS_OF_DATE = Query(None, description="Stock position date (YYYY-MM-DD), default today")
BRANCH = Query(None, description="Branch filter; repeat or comma-join, ALL for every branch")


def create_inventory_router(warehouse: ClickHouseClient) -> APIRouter:
    """Create router for the inventory dashboard reports.

    Every endpoint accepts ``as_of_date`` (ISO date, default today) and zero
    or more ``branch`` values (``ALL`` or a comma-joined list are accepted).
    """
    router = APIRouter(prefix="/api/inventory", tags=["inventory"])

    @router.get("/kpis")
    async def inventory_kpis(as_of_date: Optional[date] = AS_OF_DATE, branch: Optional[List[str]] = BRANCH):
        try:
            data = await inventory.get_inventory_kpis(warehouse, as_of_date or date.today(), branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/inventory/kpis")
        return success_response(data)

    @router.get("/low-stock")
    async def low_stock(as_of_date: Optional[date] = AS_OF_DATE, branch: Optional[List[str]] = BRANCH):
        try:
            data = await inventory.get_low_stock_items(warehouse, as_of_date or date.today(), branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/inventory/low-stock")
        return success_response(data)

    @router.get("/overstock")
    async def overstock(as_of_date: Optional[date] = AS_OF_DATE, branch: Optional[List[str]] = BRANCH):
        try:
            data = await inventory.get_overstock_items(warehouse, as_of_date or date.today(), branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/inventory/overstock")
        return success_response(data)

    @router.get("/slow-moving")
    async def slow_moving(
        start_date: Optional[date] = Query(None, description="Sales period start (YYYY-MM-DD)"),
        end_date: Optional[date] = Query(None, description="Sales period end (YYYY-MM-DD)"),
        as_of_date: Optional[date] = AS_OF_DATE,
        branch: Optional[List[str]] = BRANCH,
    ):
        invalid = check_date_range(start_date, end_date)
        if invalid is not None:
            return invalid
        try:
            data = await inventory.get_slow_moving_items(
                warehouse, start_date, end_date, as_of_date or date.today(), branch
            )
        except WarehouseError as e:
            return error_response(e, "GET /api/inventory/slow-moving")
        return success_response(data)

    @router.get("/by-branch")
    async def stock_by_branch(as_of_date: Optional[date] = AS_OF_DATE, branch: Optional[List[str]] = BRANCH):
        try:
            data = await inventory.get_stock_by_branch(warehouse, as_of_date or date.today(), branch)
        except WarehouseError as e:
            return error_response(e, "GET /api/inventory/by-branch")
        return success_response(data)

    return router
