"""Warehouse-backed tool handlers: schema introspection and guarded queries.

Every handler returns a JSON-serialisable dict. Warehouse failures are
converted to ``{"error", "failedQuery", "suggestion"}`` results so the model
can read the problem and try again with corrected arguments.
"""
import logging
from typing import Any, Dict

from ..core.schema_cache import quote_identifier
from ..core.warehouse import ClickHouseClient, WarehouseError, WarehouseQueryError

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 100

SELECT_ONLY_ERROR = "Only SELECT queries allowed"

CHECK_NAMES_SUGGESTION = (
    "Check the table and column names with listTables and describeTable, "
    "then rewrite the query."
)
CONNECTION_SUGGESTION = (
    "The database could not be reached. Tell the user the data is temporarily "
    "unavailable instead of retrying repeatedly."
)


def is_select_statement(sql: Any) -> bool:
    """Return True when the first token of ``sql`` is SELECT (case-insensitive)."""
    if not isinstance(sql, str):
        return False
    tokens = sql.split(None, 1)
    return bool(tokens) and tokens[0].upper() == "SELECT"


def quote_table_name(table_name: str) -> str:
    """Quote ``table`` or ``database.table`` for use in DESCRIBE."""
    return ".".join(quote_identifier(part) for part in table_name.strip().split("."))


def warehouse_error_result(error: Exception, query: str) -> Dict[str, Any]:
    """Convert a warehouse exception into a structured tool result."""
    if isinstance(error, WarehouseQueryError):
        suggestion = CHECK_NAMES_SUGGESTION
    elif isinstance(error, WarehouseError):
        suggestion = CONNECTION_SUGGESTION
    else:
        suggestion = CHECK_NAMES_SUGGESTION
    return {
        "error": str(error),
        "failedQuery": query,
        "suggestion": suggestion,
    }


async def list_tables_handler(warehouse: ClickHouseClient) -> Dict[str, Any]:
    """List every table in the configured database."""
    logger.info("[Tool] listTables called")
    query = "SHOW TABLES"
    try:
        rows = await warehouse.query(query)
    except WarehouseError as e:
        logger.warning(f"listTables failed: {e}")
        return warehouse_error_result(e, query)

    tables = [row["name"] for row in rows if "name" in row]
    return {
        "tables": tables,
        "message": f"Found {len(tables)} tables",
    }


async def describe_table_handler(warehouse: ClickHouseClient, table_name: str) -> Dict[str, Any]:
    """Describe one table's columns; invalid names surface the warehouse error."""
    logger.info(f"[Tool] describeTable called: {table_name}")
    if not isinstance(table_name, str) or not table_name.strip():
        return {
            "error": "table_name must be a non-empty string",
            "suggestion": "Call listTables to find a valid table name.",
        }

    query = f"DESCRIBE TABLE {quote_table_name(table_name)}"
    try:
        columns = await warehouse.query(query)
    except WarehouseError as e:
        logger.warning(f"describeTable failed for {table_name}: {e}")
        return warehouse_error_result(e, query)

    return {
        "table": table_name,
        "columns": columns,
        "message": f'Table "{table_name}" has {len(columns)} columns',
    }


async def execute_query_handler(
    warehouse: ClickHouseClient,
    sql: str,
    row_limit: int = DEFAULT_ROW_LIMIT,
) -> Dict[str, Any]:
    """Run a model-written SELECT and return at most ``row_limit`` rows.

    Statements that do not start with SELECT are rejected before the
    warehouse is contacted. ``rowCount`` always reports the full result size.
    """
    logger.info("[Tool] executeQuery called")
    if not isinstance(sql, str):
        return {
            "error": "sql must be a string",
            "failedQuery": sql,
            "suggestion": "Pass the SELECT statement as a single string.",
        }
    if not is_select_statement(sql):
        logger.warning("Rejected non-SELECT statement from model")
        return {
            "error": SELECT_ONLY_ERROR,
            "failedQuery": sql,
            "suggestion": "Rewrite the request as a single read-only SELECT statement.",
        }

    try:
        rows = await warehouse.query(sql)
    except WarehouseError as e:
        logger.warning(f"executeQuery failed: {e}")
        return warehouse_error_result(e, sql)

    return {
        "query": sql,
        "rowCount": len(rows),
        "data": rows[:row_limit],
        "message": f"Query returned {len(rows)} rows",
    }
