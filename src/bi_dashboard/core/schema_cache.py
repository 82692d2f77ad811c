"""In-memory cache of warehouse table schemas.

Loaded once on demand (or on explicit refresh) and used to describe the
database inside the assistant's system prompt.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .warehouse import ClickHouseClient

logger = logging.getLogger(__name__)


class TableColumn(BaseModel):
    """One row of ``DESCRIBE TABLE`` output."""
    name: str
    type: str
    default_type: Optional[str] = None
    default_expression: Optional[str] = None
    comment: Optional[str] = None


class TableSchema(BaseModel):
    table_name: str
    columns: List[TableColumn] = Field(default_factory=list)


def quote_identifier(name: str) -> str:
    """Backtick-quote a ClickHouse identifier."""
    return "`" + name.replace("\\", "\\\\").replace("`", "\\`") + "`"


class SchemaCache:
    """Single-flight cache of every table's columns.

    Concurrent callers of ``load`` share one warehouse round-trip: the first
    caller holds the lock and the rest find the cache filled when they get it.
    """

    def __init__(self, warehouse: ClickHouseClient):
        self.warehouse = warehouse
        self.tables: List[TableSchema] = []
        self.last_updated: Optional[datetime] = None
        self._lock = asyncio.Lock()

    @property
    def is_loading(self) -> bool:
        return self._lock.locked()

    async def load(self) -> List[TableSchema]:
        """Load all table schemas unless already cached."""
        async with self._lock:
            if self.last_updated is not None:
                return self.tables

            logger.info("Loading schema from ClickHouse")
            table_rows = await self.warehouse.query("SHOW TABLES")
            logger.info(f"Found {len(table_rows)} tables")

            schemas = []
            for row in table_rows:
                name = row["name"]
                columns = await self.warehouse.query(f"DESCRIBE TABLE {quote_identifier(name)}")
                schemas.append(
                    TableSchema(
                        table_name=name,
                        columns=[TableColumn(**_known_fields(col)) for col in columns],
                    )
                )

            self.tables = schemas
            self.last_updated = datetime.now(timezone.utc)
            logger.info(f"Schema loaded at {self.last_updated.isoformat()}")
            return self.tables

    async def get(self) -> List[TableSchema]:
        if self.last_updated is None:
            return await self.load()
        return self.tables

    async def refresh(self) -> List[TableSchema]:
        """Drop the cached schema and reload it."""
        async with self._lock:
            self.tables = []
            self.last_updated = None
        return await self.load()

    def status(self) -> Dict[str, Any]:
        return {
            "isLoaded": self.last_updated is not None,
            "tableCount": len(self.tables),
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
            "isLoading": self.is_loading,
        }

    async def format_for_prompt(self) -> str:
        """Render the cached schema as plain text for the system prompt."""
        tables = await self.get()
        if not tables:
            return "No tables found in database."

        lines = [f"Database Schema ({len(tables)} tables):", ""]
        for table in tables:
            lines.append(f"Table: {table.table_name}")
            lines.append("Columns:")
            for col in table.columns:
                line = f"  - {col.name} ({col.type})"
                if col.comment:
                    line += f" -- {col.comment}"
                lines.append(line)
            lines.append("")
        return "\n".join(lines)


def _known_fields(column: Dict[str, Any]) -> Dict[str, Any]:
    return {key: column.get(key) for key in TableColumn.model_fields if key in column}
