"""Prompt templates and builder for the data assistant."""

import logging
from datetime import date
from typing import Optional

from ..core.schema_cache import SchemaCache
from ..core.warehouse import WarehouseError

logger = logging.getLogger(__name__)


class PromptBuilder:
    """Builder for the system prompt sent with every chat request."""

    SYSTEM_PROMPT_TEMPLATE = """You are a business data analyst assistant for an ERP data warehouse running on ClickHouse. You help users understand sales, purchasing, inventory and accounting data through natural language conversation.

Today's date is {today}.

**Available Tools:**
- listTables: list every table in the database
- describeTable: show the columns and types of one table
- executeQuery: run a read-only SELECT query (at most {row_limit} rows are returned)
{web_search_line}
**Working Rules:**
1. Never guess table or column names. Call listTables, then describeTable for the tables you need, before writing SQL.
2. Only write SELECT statements. Any other statement is rejected.
3. Prefer aggregations (SUM, COUNT, AVG, GROUP BY) and LIMIT over fetching raw rows.
4. If a query fails, read the error and the suggestion, fix the query and try again. After repeated failures, stop and explain what went wrong.
5. Use ClickHouse SQL syntax and functions (toDate, toStartOfMonth, formatDateTime, and so on).

**Answer Format:**
- Answer in the same language the user writes in.
- Lead with the direct answer, then the key figures.
- Format numbers with thousands separators and two decimals for money.
- Show at most 10 rows of raw data; summarize the rest.
- Do not show SQL unless the user asks for it.{schema_section}"""

    WEB_SEARCH_LINE = "- webSearch: search the web for external context (market prices, news, regulations)\n"

    SCHEMA_SECTION_TEMPLATE = """

**Known Schema (may be out of date; describeTable is authoritative):**
{schema}"""

    def __init__(
        self,
        schema_cache: Optional[SchemaCache] = None,
        include_schema: bool = False,
        web_search_enabled: bool = False,
        row_limit: int = 100,
    ):
        self.schema_cache = schema_cache
        self.include_schema = include_schema and schema_cache is not None
        self.web_search_enabled = web_search_enabled
        self.row_limit = row_limit

    def build_system_prompt(self, schema_text: Optional[str] = None, today: Optional[date] = None) -> str:
        """Render the system prompt, optionally embedding a schema description."""
        schema_section = ""
        if schema_text:
            schema_section = self.SCHEMA_SECTION_TEMPLATE.format(schema=schema_text)
        return self.SYSTEM_PROMPT_TEMPLATE.format(
            today=(today or date.today()).isoformat(),
            row_limit=self.row_limit,
            web_search_line=self.WEB_SEARCH_LINE if self.web_search_enabled else "",
            schema_section=schema_section,
        )

    async def build(self) -> str:
        """Build the system prompt, loading the cached schema when configured.

        A schema load failure degrades to the prompt without schema; the model
        can still discover tables through its tools.
        """
        schema_text = None
        if self.include_schema:
            try:
                schema_text = await self.schema_cache.format_for_prompt()
            except WarehouseError as e:
                logger.warning(f"Schema unavailable for prompt: {e}")
        return self.build_system_prompt(schema_text)
