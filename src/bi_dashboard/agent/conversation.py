"""Immutable conversation state for the tool-calling loop.

A ``ConversationState`` is a tuple of turns. Appending returns a new state,
so a run can hand its history to logging or tests without later iterations
changing what they saw.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ..core.json_encoder import dumps
from ..llm.providers.base import Message, ToolCall

logger = logging.getLogger(__name__)


class Turn(BaseModel):
    """One entry in the conversation: user text, assistant reply, or tool result."""
    model_config = ConfigDict(frozen=True)

    role: str
    text: Optional[str] = None
    tool_calls: Tuple[ToolCall, ...] = ()
    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None
    result: Optional[Dict[str, Any]] = None

    @classmethod
    def user(cls, text: str) -> "Turn":
        return cls(role="user", text=text)

    @classmethod
    def assistant(cls, text: Optional[str], tool_calls: Iterable[ToolCall] = ()) -> "Turn":
        return cls(role="assistant", text=text, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, tool_call_id: str, tool_name: str, result: Dict[str, Any]) -> "Turn":
        return cls(role="tool", tool_call_id=tool_call_id, tool_name=tool_name, result=result)

    def to_message(self) -> Message:
        if self.role == "tool":
            return Message(
                role="tool",
                content=dumps(self.result or {}),
                name=self.tool_name,
                tool_call_id=self.tool_call_id,
            )
        if self.role == "assistant" and self.tool_calls:
            return Message(role="assistant", content=self.text, tool_calls=list(self.tool_calls))
        return Message(role=self.role, content=self.text or "")


class ConversationState(BaseModel):
    """Ordered, append-only history of a chat."""
    model_config = ConfigDict(frozen=True)

    turns: Tuple[Turn, ...] = ()

    def append(self, *turns: Turn) -> "ConversationState":
        """Return a new state with ``turns`` added at the end."""
        return ConversationState(turns=self.turns + tuple(turns))

    def __len__(self) -> int:
        return len(self.turns)

    @property
    def tool_turns(self) -> List[Turn]:
        return [turn for turn in self.turns if turn.role == "tool"]

    def to_messages(self, system_prompt: Optional[str] = None) -> List[Message]:
        """Render the history as provider messages, system prompt first."""
        messages = []
        if system_prompt:
            messages.append(Message(role="system", content=system_prompt))
        messages.extend(turn.to_message() for turn in self.turns)
        return messages

    @classmethod
    def from_history(cls, history: Iterable[Dict[str, Any]]) -> "ConversationState":
        """Build a state from client-supplied ``{role, content}`` messages.

        Only user and assistant text is accepted from the client; system
        messages and anything else are dropped so the server owns the prompt.
        Blank assistant turns are skipped.
        """
        turns = []
        for entry in history:
            role = entry.get("role")
            content = entry.get("content")
            if role not in ("user", "assistant"):
                logger.debug(f"Dropping history message with role {role!r}")
                continue
            if not isinstance(content, str):
                continue
            if role == "assistant" and not content.strip():
                continue
            turns.append(Turn(role=role, text=content))
        return cls(turns=tuple(turns))
