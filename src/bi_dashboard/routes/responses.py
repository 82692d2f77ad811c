"""Response helpers shared by the report routers."""

import logging
from datetime import date
from typing import Any, Optional

from fastapi.responses import JSONResponse, Response

from ..core.json_encoder import dumps

logger = logging.getLogger(__name__)

MISSING_DATE_RANGE = "Missing required parameters: start_date, end_date"


def success_response(data: Any, **extra: Any) -> Response:
    """``{"success": true, "data": ...}`` encoded with the warehouse-aware encoder."""
    return Response(
        content=dumps({"success": True, "data": data, **extra}),
        media_type="application/json",
    )


def error_response(error: Exception, endpoint: str) -> JSONResponse:
    logger.error(f"{endpoint} failed: {error}")
    return JSONResponse(status_code=500, content={"success": False, "error": str(error)})


def bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": message})


def check_date_range(start_date: Optional[date], end_date: Optional[date]) -> Optional[JSONResponse]:
    """Return a 400 response when the range is missing or inverted, else None."""
    if start_date is None or end_date is None:
        return bad_request(MISSING_DATE_RANGE)
    if start_date > end_date:
        return bad_request("start_date must not be after end_date")
    return None
