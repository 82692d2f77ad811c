"""FastAPI routes for health checks."""
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.warehouse import ClickHouseClient


def create_health_router(warehouse: ClickHouseClient) -> APIRouter:
    """Create router for health check endpoints."""
    router = APIRouter(tags=["health"])

    @router.get("/health")
    async def health_check():
        """Health check endpoint; 503 when the warehouse does not answer."""
        warehouse_ok = await warehouse.ping()
        health_data = {
            "status": "healthy" if warehouse_ok else "unhealthy",
            "timestamp": time.time(),
            "warehouse": "reachable" if warehouse_ok else "unreachable",
        }
        if not warehouse_ok:
            return JSONResponse(status_code=503, content=health_data)
        return health_data

    return router
