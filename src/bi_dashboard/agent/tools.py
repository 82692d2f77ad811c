"""Tool registry for the data assistant.

The tool set is closed: ``ToolName`` enumerates every tool the assistant can
ever call and the registry binds exactly one handler per member. Adding a
member without a handler makes the registry refuse to construct, so a new
tool cannot silently fall through to "unknown" at dispatch time.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from ..config.settings import Settings
from ..core.warehouse import ClickHouseClient
from ..handlers.warehouse_tools import (
    DEFAULT_ROW_LIMIT,
    describe_table_handler,
    execute_query_handler,
    list_tables_handler,
)
from ..handlers.web_search import web_search_handler
from ..llm.providers.base import ToolDefinition

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    """Every tool the model may request."""
    LIST_TABLES = "listTables"
    DESCRIBE_TABLE = "describeTable"
    EXECUTE_QUERY = "executeQuery"
    WEB_SEARCH = "webSearch"

    @classmethod
    def parse(cls, name: Any) -> Optional["ToolName"]:
        """Return the member for ``name`` or None when it is not a known tool."""
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class Tool:
    """A tool published to the model."""
    name: ToolName
    description: str
    parameters: Dict[str, Any]  # JSON Schema format
    handler: Callable[..., Awaitable[Dict[str, Any]]]

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name.value,
            description=self.description,
            parameters=self.parameters,
        )


def _string_params(**properties: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            name: {"type": "string", "description": description}
            for name, description in properties.items()
        },
        "required": list(properties),
    }


class ToolRegistry:
    """Registry of the warehouse (and optional web search) tools.

    Args:
        warehouse: ClickHouse client the introspection and query tools use
        row_limit: Maximum rows ``executeQuery`` hands back to the model
        enable_web_search: Publish ``webSearch`` to the model
        serper_api_key: Primary search provider key
        serpapi_api_key: Secondary search provider key

    Example:
        >>> registry = ToolRegistry(warehouse)
        >>> definitions = registry.get_tool_definitions()
        >>> tool = registry.get_tool("listTables")
        >>> result = await tool.handler()
    """

    def __init__(
        self,
        warehouse: ClickHouseClient,
        row_limit: int = DEFAULT_ROW_LIMIT,
        enable_web_search: bool = True,
        serper_api_key: Optional[str] = None,
        serpapi_api_key: Optional[str] = None,
    ):
        self.warehouse = warehouse
        self.row_limit = row_limit
        self.enable_web_search = enable_web_search
        self.serper_api_key = serper_api_key
        self.serpapi_api_key = serpapi_api_key

        self._handlers: Dict[ToolName, Callable[..., Awaitable[Dict[str, Any]]]] = {
            ToolName.LIST_TABLES: self._list_tables,
            ToolName.DESCRIBE_TABLE: self._describe_table,
            ToolName.EXECUTE_QUERY: self._execute_query,
            ToolName.WEB_SEARCH: self._web_search,
        }
        missing = set(ToolName) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler bound for tools: {sorted(m.value for m in missing)}")

        self.tools = self._register_tools()

    @classmethod
    def from_settings(cls, warehouse: ClickHouseClient, settings: Settings) -> "ToolRegistry":
        return cls(
            warehouse,
            row_limit=settings.query_row_limit,
            enable_web_search=settings.enable_web_search,
            serper_api_key=settings.serper_api_key,
            serpapi_api_key=settings.serpapi_api_key,
        )

    async def _list_tables(self) -> Dict[str, Any]:
        return await list_tables_handler(self.warehouse)

    async def _describe_table(self, table_name: str) -> Dict[str, Any]:
        return await describe_table_handler(self.warehouse, table_name)

    async def _execute_query(self, sql: str) -> Dict[str, Any]:
        return await execute_query_handler(self.warehouse, sql, row_limit=self.row_limit)

    async def _web_search(self, query: str) -> Dict[str, Any]:
        return await web_search_handler(
            query,
            serper_api_key=self.serper_api_key,
            serpapi_api_key=self.serpapi_api_key,
        )

    def _register_tools(self) -> List[Tool]:
        tools = [
            Tool(
                name=ToolName.LIST_TABLES,
                description="List all tables in the ClickHouse database",
                parameters={"type": "object", "properties": {}, "required": []},
                handler=self._handlers[ToolName.LIST_TABLES],
            ),
            Tool(
                name=ToolName.DESCRIBE_TABLE,
                description=(
                    "Get the schema/structure of a specific table: column names, "
                    "types and comments. Call this before writing SQL against a table."
                ),
                parameters=_string_params(table_name="The name of the table to describe"),
                handler=self._handlers[ToolName.DESCRIBE_TABLE],
            ),
            Tool(
                name=ToolName.EXECUTE_QUERY,
                description=(
                    "Execute a SELECT query on ClickHouse. Only read-only SELECT statements "
                    f"are accepted; at most {self.row_limit} rows are returned."
                ),
                parameters=_string_params(sql="The SELECT SQL query to execute"),
                handler=self._handlers[ToolName.EXECUTE_QUERY],
            ),
        ]
        if self.enable_web_search:
            tools.append(
                Tool(
                    name=ToolName.WEB_SEARCH,
                    description=(
                        "Search the web for external context such as market prices, "
                        "news or regulations. Returns up to 5 results."
                    ),
                    parameters=_string_params(query="The search query"),
                    handler=self._handlers[ToolName.WEB_SEARCH],
                )
            )
        return tools

    def get_tool_definitions(self) -> List[ToolDefinition]:
        """Tool schemas in the provider-neutral format."""
        return [tool.to_definition() for tool in self.tools]

    def get_tool(self, name: Any) -> Optional[Tool]:
        """Look up a published tool by name; None for unknown or unpublished names."""
        tool_name = ToolName.parse(name)
        if tool_name is None:
            return None
        for tool in self.tools:
            if tool.name is tool_name:
                return tool
        return None

    def get_all_tools(self) -> List[Tool]:
        return self.tools
