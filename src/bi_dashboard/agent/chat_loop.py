"""Bounded tool-calling loop between the chat model and the warehouse tools.

Each iteration sends the conversation to the model. A reply with tool calls
has its calls executed and their results appended to the conversation; a
reply without tool calls is the final answer and ends the run. The loop
never runs more than ``max_iterations`` model calls.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from ..config.settings import Settings
from ..llm.providers.base import LLMProvider
from .conversation import ConversationState, Turn
from .prompts import PromptBuilder
from .tool_executor import ToolExecution, ToolExecutor
from .tools import ToolName, ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10

RETRIES_EXHAUSTED_SUGGESTION = (
    "Several queries have failed in this conversation. Stop retrying, explain "
    "to the user what could not be answered and which data was missing."
)


class StopReason(str, Enum):
    ANSWERED = "answered"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass
class IterationBudget:
    """Counts model calls against a fixed maximum."""
    maximum: int
    used: int = 0

    def __post_init__(self):
        if self.maximum < 1:
            raise ValueError("Iteration budget must allow at least one model call")

    @property
    def exhausted(self) -> bool:
        return self.used >= self.maximum

    @property
    def remaining(self) -> int:
        return max(self.maximum - self.used, 0)

    def consume(self) -> None:
        if self.exhausted:
            raise RuntimeError("Iteration budget exhausted")
        self.used += 1


@dataclass(frozen=True)
class ChatLoopConfig:
    """Everything a run needs, passed explicitly rather than read from globals."""
    provider: LLMProvider
    registry: ToolRegistry
    prompt_builder: PromptBuilder = field(default_factory=PromptBuilder)
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tool_timeout_seconds: float = 30.0
    max_query_retries: int = 3

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: LLMProvider,
        registry: ToolRegistry,
        prompt_builder: Optional[PromptBuilder] = None,
    ) -> "ChatLoopConfig":
        return cls(
            provider=provider,
            registry=registry,
            prompt_builder=prompt_builder or PromptBuilder(
                web_search_enabled=settings.enable_web_search,
                row_limit=settings.query_row_limit,
            ),
            max_iterations=settings.chat_max_iterations,
            tool_timeout_seconds=settings.tool_timeout_seconds,
            max_query_retries=settings.max_query_retries,
        )


class ChatRun:
    """One request's pass through the loop.

    The run owns its budget, its conversation state and the record of every
    tool execution, so concurrent requests never share mutable state.
    ``stream`` may be consumed once.
    """

    def __init__(self, config: ChatLoopConfig, state: ConversationState):
        self.config = config
        self.state = state
        self.budget = IterationBudget(config.max_iterations)
        self.executor = ToolExecutor(config.registry, timeout_seconds=config.tool_timeout_seconds)
        self.tool_executions: List[ToolExecution] = []
        self.stop_reason: Optional[StopReason] = None
        self.failed_query_attempts = 0
        self._partial_text: Optional[str] = None
        self._started = False

    @property
    def iterations(self) -> int:
        return self.budget.used

    async def stream(self) -> AsyncIterator[str]:
        """Drive the loop and yield the assistant's reply text.

        Raises:
            LLMProviderError: If the model call fails; tool failures never raise
        """
        if self._started:
            raise RuntimeError("ChatRun.stream() can only be consumed once")
        self._started = True

        system_prompt = await self.config.prompt_builder.build()
        tools = self.config.registry.get_tool_definitions()
        provider = self.config.provider

        while not self.budget.exhausted:
            self.budget.consume()
            logger.info(f"Chat iteration {self.budget.used}/{self.budget.maximum}")

            response = await provider.generate(
                messages=self.state.to_messages(system_prompt),
                tools=tools,
            )

            if not response.has_tool_calls():
                text = response.content or ""
                self.state = self.state.append(Turn.assistant(text))
                self.stop_reason = StopReason.ANSWERED
                logger.info(
                    f"Answered after {self.budget.used} iterations "
                    f"and {len(self.tool_executions)} tool calls"
                )
                if text:
                    yield text
                return

            if response.content:
                self._partial_text = response.content
            self.state = self.state.append(Turn.assistant(response.content, response.tool_calls))

            executions = await self.executor.execute_tool_calls(response.tool_calls)
            for execution in executions:
                execution = execution.model_copy(
                    update={"result": self._track_query_failures(execution)}
                )
                self.tool_executions.append(execution)
                self.state = self.state.append(
                    Turn.tool(execution.tool_call_id, execution.tool_name, execution.result)
                )

        self.stop_reason = StopReason.BUDGET_EXHAUSTED
        logger.warning(
            f"Iteration budget of {self.budget.maximum} exhausted "
            f"after {len(self.tool_executions)} tool calls"
        )
        if self._partial_text:
            yield self._partial_text

    async def run(self) -> str:
        """Consume the stream and return the whole reply."""
        chunks = []
        async for chunk in self.stream():
            chunks.append(chunk)
        return "".join(chunks)

    def _track_query_failures(self, execution: ToolExecution) -> Dict[str, Any]:
        if execution.tool_name != ToolName.EXECUTE_QUERY.value or execution.success:
            return execution.result

        self.failed_query_attempts += 1
        if self.failed_query_attempts < self.config.max_query_retries:
            return execution.result

        logger.warning(f"executeQuery failed {self.failed_query_attempts} times in this run")
        result = dict(execution.result)
        result["retriesExhausted"] = True
        result["suggestion"] = RETRIES_EXHAUSTED_SUGGESTION
        return result


class ToolCallingLoop:
    """Entry point used by the chat route.

    Example:
        >>> loop = ToolCallingLoop(ChatLoopConfig(provider=provider, registry=registry))
        >>> run = loop.start(history, "What were total sales last month?")
        >>> async for chunk in run.stream():
        ...     print(chunk)
    """

    def __init__(self, config: ChatLoopConfig):
        self.config = config

    def start(self, history: ConversationState, user_message: str) -> ChatRun:
        state = history.append(Turn.user(user_message))
        return ChatRun(self.config, state)

    async def answer(self, history: ConversationState, user_message: str) -> str:
        return await self.start(history, user_message).run()
