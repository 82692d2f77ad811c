"""Async ClickHouse client on the native protocol (``asynch``).

Each query opens its own connection, so independent report queries can run
concurrently. Values are bound by the driver using ``%(name)s`` placeholders;
the driver escapes them, so report SQL never interpolates user input itself.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from asynch import Connection
from asynch.cursors import DictCursor
from asynch.errors import ClickHouseException, NetworkError, ServerException
from pydantic import BaseModel, Field, field_validator

from ..config.settings import Settings

logger = logging.getLogger(__name__)


class WarehouseError(Exception):
    """Base exception for warehouse errors."""
    pass


class WarehouseConnectionError(WarehouseError):
    """Raised when ClickHouse cannot be reached or times out."""
    pass


class WarehouseQueryError(WarehouseError):
    """Raised when ClickHouse rejects or fails a query."""

    def __init__(self, message: str, query: str, code: Optional[int] = None):
        super().__init__(message)
        self.query = query
        self.code = code


class ClickHouseConfig(BaseModel):
    """Connection settings for the ClickHouse native interface.

    Attributes:
        host: Server host name
        port: Native protocol port (9000, or 9440 with TLS)
        user: ClickHouse user
        password: ClickHouse password
        database: Default database for unqualified table names
        secure: Connect over TLS
        timeout: Per-query timeout in seconds
        read_only: Run every query with ``readonly=2`` so the server refuses writes
    """

    host: str
    port: int = Field(default=9000, gt=0, lt=65536)
    user: str = Field(default="default")
    password: str = Field(default="")
    database: str = Field(default="default")
    secure: bool = Field(default=False)
    timeout: float = Field(default=30.0, gt=0)
    read_only: bool = Field(default=True)

    @field_validator('host')
    @classmethod
    def validate_host(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("host cannot be empty")
        return v

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClickHouseConfig":
        return cls(
            host=settings.clickhouse_host,
            port=settings.clickhouse_port,
            user=settings.clickhouse_user,
            password=settings.clickhouse_password,
            database=settings.clickhouse_db,
            secure=settings.clickhouse_secure,
            timeout=settings.clickhouse_timeout,
            read_only=settings.clickhouse_readonly,
        )


class ClickHouseClient:
    """Read-oriented async ClickHouse client.

    Example:
        ```python
        warehouse = ClickHouseClient(config)
        rows = await warehouse.query(
            "SELECT * FROM stock_transaction WHERE branch_sync = %(branch)s",
            {"branch": "HQ"},
        )
        ```
    """

    def __init__(self, config: ClickHouseConfig):
        self.config = config

    def _connect(self) -> Connection:
        return Connection(
            host=self.config.host,
            port=self.config.port,
            database=self.config.database,
            user=self.config.user,
            password=self.config.password,
            secure=self.config.secure,
        )

    async def _fetch(self, sql: str, params: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        async with self._connect() as conn:
            async with conn.cursor(cursor=DictCursor) as cursor:
                if self.config.read_only:
                    cursor.set_settings({"readonly": 2})
                # No params means no substitution
                await cursor.execute(sql, params or None)
                return list(await cursor.fetchall())

    async def query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a query and return its rows.

        Args:
            sql: Statement in ClickHouse SQL
            params: Values for ``%(name)s`` placeholders

        Returns:
            One dict per result row

        Raises:
            WarehouseConnectionError: On network failures or timeouts
            WarehouseQueryError: When ClickHouse returns an error
        """
        try:
            return await asyncio.wait_for(self._fetch(sql, params), timeout=self.config.timeout)
        except asyncio.TimeoutError as e:
            raise WarehouseConnectionError(
                f"ClickHouse query timed out after {self.config.timeout}s"
            ) from e
        except (NetworkError, OSError) as e:
            raise WarehouseConnectionError(f"ClickHouse is unreachable: {e}") from e
        except ServerException as e:
            logger.warning(f"ClickHouse query failed (code {e.code}): {str(e)[:200]}")
            raise WarehouseQueryError(str(e), query=sql, code=e.code) from e
        except ClickHouseException as e:
            logger.warning(f"ClickHouse client error: {e}")
            raise WarehouseQueryError(str(e), query=sql, code=getattr(e, "code", None)) from e

    async def ping(self) -> bool:
        """Return True when the server answers a trivial query."""
        try:
            await self.query("SELECT 1")
        except WarehouseError as e:
            logger.warning(f"ClickHouse ping failed: {e}")
            return False
        return True


def init_warehouse_client(settings: Settings) -> ClickHouseClient:
    """Build the warehouse client from application settings."""
    return ClickHouseClient(ClickHouseConfig.from_settings(settings))
