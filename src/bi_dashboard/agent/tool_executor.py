"""Tool executor for running model-requested tool calls.

Every call produces a ``ToolExecution`` whose ``result`` is a JSON-ready
dict; nothing a handler raises escapes this module except cancellation.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from ..llm.providers.base import ToolCall
from .tools import ToolRegistry

logger = logging.getLogger(__name__)

UNKNOWN_TOOL_RESULT = {"error": "Unknown tool"}


class ToolExecution(BaseModel):
    """Outcome of one tool call, keyed by the model's call id."""
    tool_call_id: str
    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Dict[str, Any]
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return "error" not in self.result


class ToolExecutor:
    """Executes tool calls against the registry.

    Args:
        tool_registry: Registry of published tools
        timeout_seconds: Per-call timeout; a slow warehouse query becomes an error result

    Example:
        >>> executor = ToolExecutor(tool_registry)
        >>> executions = await executor.execute_tool_calls(response.tool_calls)
    """

    def __init__(self, tool_registry: ToolRegistry, timeout_seconds: float = 30.0):
        self.registry = tool_registry
        self.timeout_seconds = timeout_seconds

    async def execute_tool_calls(self, tool_calls: List[ToolCall]) -> List[ToolExecution]:
        """Execute tool calls one after another, in the order the model listed them."""
        results = []
        for tool_call in tool_calls:
            results.append(await self.execute_single_tool(tool_call))
        return results

    async def execute_single_tool(self, tool_call: ToolCall) -> ToolExecution:
        """Execute a single tool call and always return a structured result."""
        started = time.monotonic()
        result = await self._run(tool_call)
        duration_ms = (time.monotonic() - started) * 1000

        if "error" in result:
            logger.info(f"Tool {tool_call.name} returned error: {result['error']}")
        else:
            logger.info(f"Tool {tool_call.name} executed successfully in {duration_ms:.0f}ms")

        return ToolExecution(
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
            arguments=tool_call.arguments,
            result=result,
            duration_ms=duration_ms,
        )

    async def _run(self, tool_call: ToolCall) -> Dict[str, Any]:
        logger.info(f"Executing tool: {tool_call.name} with args: {tool_call.arguments}")

        tool = self.registry.get_tool(tool_call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {tool_call.name}")
            return dict(UNKNOWN_TOOL_RESULT)

        try:
            result = await asyncio.wait_for(
                tool.handler(**tool_call.arguments),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Tool {tool_call.name} timed out after {self.timeout_seconds}s")
            return {
                "error": f"Tool {tool_call.name} timed out after {self.timeout_seconds:g}s",
                "suggestion": "Simplify the query (add filters, aggregate, or LIMIT) and try again.",
            }
        except TypeError as e:
            return {
                "error": f"Invalid arguments for {tool_call.name}: {e}",
                "suggestion": "Call the tool again with exactly the parameters in its schema.",
            }
        except Exception as e:
            logger.error(f"Tool execution failed: {tool_call.name}: {e}", exc_info=True)
            return {
                "error": str(e) or type(e).__name__,
                "suggestion": "Check the arguments with listTables and describeTable and retry.",
            }

        if not isinstance(result, dict):
            return {"data": result, "message": "OK"}
        return result
