"""Schema cache status and refresh routes."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.schema_cache import SchemaCache
from ..core.warehouse import WarehouseError

logger = logging.getLogger(__name__)


def create_schema_router(schema_cache: SchemaCache) -> APIRouter:
    """Create router for inspecting and refreshing the schema cache."""
    router = APIRouter(prefix="/api", tags=["schema"])

    @router.get("/refresh-schema")
    async def schema_status():
        """Report whether the schema is loaded and when it was last refreshed."""
        return schema_cache.status()

    @router.post("/refresh-schema")
    async def refresh_schema():
        """Drop the cached schema and reload it from the warehouse."""
        try:
            tables = await schema_cache.refresh()
        except WarehouseError as e:
            logger.error(f"Schema refresh failed: {e}")
            return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

        status = schema_cache.status()
        return {
            "success": True,
            "message": f"Schema refreshed: {len(tables)} tables",
            "tableCount": status["tableCount"],
            "lastUpdated": status["lastUpdated"],
        }

    return router
