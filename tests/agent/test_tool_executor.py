"""Tests for tool execution."""

import asyncio

import pytest

from bi_dashboard.agent.tool_executor import ToolExecutor
from bi_dashboard.agent.tools import ToolRegistry
from bi_dashboard.core.warehouse import WarehouseConnectionError
from bi_dashboard.llm.providers.base import ToolCall


@pytest.fixture
def executor(mock_warehouse):
    return ToolExecutor(ToolRegistry(mock_warehouse, enable_web_search=False), timeout_seconds=1)


class TestToolExecutor:
    """Tests for ToolExecutor."""

    @pytest.mark.asyncio
    async def test_successful_call(self, executor, mock_warehouse):
        mock_warehouse.query.return_value = [{"name": "sales"}]

        execution = await executor.execute_single_tool(ToolCall(id="call_1", name="listTables"))

        assert execution.tool_call_id == "call_1"
        assert execution.tool_name == "listTables"
        assert execution.success is True
        assert execution.result["tables"] == ["sales"]
        assert execution.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_unknown_tool(self, executor, mock_warehouse):
        execution = await executor.execute_single_tool(ToolCall(id="x", name="forecastSales"))

        assert execution.result == {"error": "Unknown tool"}
        assert execution.success is False
        mock_warehouse.query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unpublished_web_search_is_unknown(self, executor):
        execution = await executor.execute_single_tool(
            ToolCall(id="x", name="webSearch", arguments={"query": "news"})
        )

        assert execution.result == {"error": "Unknown tool"}

    @pytest.mark.asyncio
    async def test_wrong_arguments_become_error_result(self, executor):
        execution = await executor.execute_single_tool(
            ToolCall(id="x", name="describeTable", arguments={"table": "sales"})
        )

        assert execution.result["error"].startswith("Invalid arguments for describeTable")
        assert "suggestion" in execution.result

    @pytest.mark.asyncio
    async def test_slow_tool_times_out(self, mock_warehouse):
        async def slow_query(sql, params=None):
            await asyncio.sleep(5)
            return []

        mock_warehouse.query.side_effect = slow_query
        executor = ToolExecutor(ToolRegistry(mock_warehouse), timeout_seconds=0.05)

        execution = await executor.execute_single_tool(
            ToolCall(id="x", name="executeQuery", arguments={"sql": "SELECT sleep(5)"})
        )

        assert "timed out" in execution.result["error"]
        assert "suggestion" in execution.result

    @pytest.mark.asyncio
    async def test_warehouse_outage_is_structured(self, executor, mock_warehouse):
        mock_warehouse.query.side_effect = WarehouseConnectionError("ClickHouse is unreachable")

        execution = await executor.execute_single_tool(ToolCall(id="x", name="listTables"))

        assert execution.result["error"] == "ClickHouse is unreachable"
        assert execution.result["failedQuery"] == "SHOW TABLES"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_structured(self, executor, mock_warehouse):
        mock_warehouse.query.side_effect = KeyError("name")

        execution = await executor.execute_single_tool(ToolCall(id="x", name="listTables"))

        assert execution.success is False
        assert "suggestion" in execution.result

    @pytest.mark.asyncio
    async def test_calls_execute_serially_in_order(self, executor, mock_warehouse):
        seen = []

        async def record(sql, params=None):
            seen.append(sql)
            return [{"n": 1}]

        mock_warehouse.query.side_effect = record

        executions = await executor.execute_tool_calls([
            ToolCall(id="1", name="executeQuery", arguments={"sql": "SELECT 1"}),
            ToolCall(id="2", name="executeQuery", arguments={"sql": "SELECT 2"}),
        ])

        assert [e.tool_call_id for e in executions] == ["1", "2"]
        assert seen == ["SELECT 1", "SELECT 2"]
