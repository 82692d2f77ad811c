"""Chat API route: natural-language questions answered through the tool loop."""

import asyncio
import logging
from typing import AsyncIterator, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from ..agent.chat_loop import ToolCallingLoop
from ..agent.conversation import ConversationState
from ..llm.providers.base import LLMProviderError

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.5
CLIENT_CLOSED_REQUEST = 499


class MessagePart(BaseModel):
    """One part of a multi-part client message; only text parts are read."""
    type: str
    text: Optional[str] = None


class ChatMessage(BaseModel):
    role: str
    content: Optional[str] = None
    parts: Optional[List[MessagePart]] = None

    def text(self) -> str:
        """Message text from ``content`` or, failing that, the joined text parts."""
        if self.content:
            return self.content
        if self.parts:
            return "".join(part.text or "" for part in self.parts if part.type == "text")
        return ""


class ChatRequest(BaseModel):
    """Request body for ``POST /api/chat``."""
    messages: List[ChatMessage] = Field(..., description="Conversation so far; the last entry is the new user message")


class ClientDisconnected(Exception):
    """Raised when the HTTP client goes away before the answer is ready."""
    pass


async def _first_chunk(request: Request, chunks: AsyncIterator[str]) -> Optional[str]:
    """Wait for the first chunk, cancelling the run if the client disconnects."""

    async def next_chunk() -> Optional[str]:
        try:
            return await chunks.__anext__()
        except StopAsyncIteration:
            return None

    task = asyncio.create_task(next_chunk())
    while True:
        done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
        if done:
            return task.result()
        if await request.is_disconnected():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            raise ClientDisconnected()


def create_chat_router(loop: ToolCallingLoop) -> APIRouter:
    """Create the chat router.

    Args:
        loop: Configured tool-calling loop shared by all requests

    Returns:
        Configured APIRouter
    """
    router = APIRouter(prefix="/api", tags=["chat"])

    @router.post("/chat")
    async def chat(body: ChatRequest, request: Request):
        """Answer the last user message, streaming the reply as plain text.

        Model failures before any text is produced are returned as 500 with
        ``{"error": ...}``; tool failures never fail the request.
        """
        if not body.messages:
            return JSONResponse(status_code=400, content={"error": "messages must not be empty"})

        last = body.messages[-1]
        question = last.text().strip()
        if last.role != "user" or not question:
            return JSONResponse(
                status_code=400,
                content={"error": "The last message must be a non-empty user message"},
            )

        history = ConversationState.from_history(
            {"role": message.role, "content": message.text()} for message in body.messages[:-1]
        )
        run = loop.start(history, question)
        chunks = run.stream()
        logger.info(f"Chat request with {len(history)} prior messages")

        try:
            first = await _first_chunk(request, chunks)
        except ClientDisconnected:
            logger.info("Client disconnected; chat run cancelled")
            await chunks.aclose()
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        except LLMProviderError as e:
            logger.error(f"Chat failed: {e}")
            await chunks.aclose()
            return JSONResponse(status_code=500, content={"error": str(e)})
        except Exception as e:
            logger.exception(f"Unexpected chat failure: {e}")
            await chunks.aclose()
            return JSONResponse(status_code=500, content={"error": "Internal server error"})

        async def body_stream() -> AsyncIterator[str]:
            if first:
                yield first
            try:
                async for chunk in chunks:
                    yield chunk
            except LLMProviderError as e:
                logger.error(f"Chat failed after streaming began: {e}")

        return StreamingResponse(body_stream(), media_type="text/plain; charset=utf-8")

    return router
