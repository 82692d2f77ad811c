"""FastAPI application setup and middleware."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..agent.chat_loop import ChatLoopConfig, ToolCallingLoop
from ..agent.prompts import PromptBuilder
from ..agent.tools import ToolRegistry
from ..config.settings import Settings
from ..core.schema_cache import SchemaCache
from ..core.warehouse import ClickHouseClient, init_warehouse_client
from ..llm.factory import create_provider_from_settings
from ..llm.providers.base import LLMProvider
from ..routes.accounting import create_accounting_router
from ..routes.chat import create_chat_router
from ..routes.health import create_health_router
from ..routes.inventory import create_inventory_router
from ..routes.sales import create_sales_router
from ..routes.schema import create_schema_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings,
    warehouse: Optional[ClickHouseClient] = None,
    provider: Optional[LLMProvider] = None,
    schema_cache: Optional[SchemaCache] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings
        warehouse: ClickHouse client; built from settings when omitted
        provider: Chat model provider; built from settings when omitted
        schema_cache: Schema cache; one is created over ``warehouse`` when omitted

    Raises:
        LLMConfigurationError: If no provider is given and the settings lack its API key
    """
    if warehouse is None:
        warehouse = init_warehouse_client(settings)
    if provider is None:
        provider = create_provider_from_settings(settings)
    if schema_cache is None:
        schema_cache = SchemaCache(warehouse)

    registry = ToolRegistry.from_settings(warehouse, settings)
    prompt_builder = PromptBuilder(
        schema_cache=schema_cache,
        include_schema=settings.prompt_include_schema,
        web_search_enabled=settings.enable_web_search,
        row_limit=settings.query_row_limit,
    )
    loop = ToolCallingLoop(
        ChatLoopConfig.from_settings(settings, provider, registry, prompt_builder)
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Starting with {provider.provider_name} model "
            f"{provider.get_model_info().get('model')} against {settings.clickhouse_host}:{settings.clickhouse_port}"
        )
        yield

    app = FastAPI(
        title="BI Dashboard API",
        description="Inventory reports and a natural-language data assistant over ClickHouse.",
        version=__version__,
        lifespan=lifespan,
    )

    # Add logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"Received request: {request.method} {request.url.path}")
        try:
            response = await call_next(request)
            logger.info(f"Response status: {response.status_code}")
            return response
        except Exception as e:
            logger.error(f"Error processing request: {e}")
            raise

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "Invalid request", "detail": _validation_errors(exc)},
        )

    app.include_router(create_chat_router(loop))
    app.include_router(create_schema_router(schema_cache))
    app.include_router(create_inventory_router(warehouse))
    app.include_router(create_sales_router(warehouse))
    app.include_router(create_accounting_router(warehouse))
    app.include_router(create_health_router(warehouse))

    app.state.settings = settings
    app.state.loop = loop
    return app


def _validation_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
