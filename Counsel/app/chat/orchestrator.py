from __future__ import annotations

from typing import Any, AsyncGenerator, AsyncIterator, Optional, Protocol

from Counsel.app.chat.prompt import build_conversation, build_search_tool, build_system_prompt
from Counsel.app.chat.session import StreamSession
from Counsel.app.chat.tools import run_tool_call
from Counsel.app.errors import ProviderStreamError
from Counsel.app.legal.corpus import Corpus
from Counsel.app.logging_utils import get_stream_logger, safe_json
from Counsel.app.models import ContentDelta, ToolCallRequest


DONE_FRAME = {"done": True}


class ChatProvider(Protocol):
    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> AsyncGenerator[Any, None]:
        ...


def content_frame(text: str) -> dict[str, Any]:
    return {"type": "content", "content": text}


def tool_result_frame(tool_call_id: str, content: str) -> dict[str, Any]:
    return {"type": "tool_result", "tool_call_id": tool_call_id, "content": content}


def error_frame(message: str) -> dict[str, Any]:
    return {"error": message}


class ChatOrchestrator:
    """Runs one conversation against the provider and yields client frames.

    Each provider round streams content straight through. Tool calls are
    answered from the corpus as they arrive; their results are appended to the
    history and a new round is opened so the model can continue. The round
    after ``max_tool_rounds`` is opened without tools.
    """

    def __init__(
        self,
        provider: ChatProvider,
        corpus: Corpus,
        max_tool_rounds: int = 4,
        system_prompt: Optional[str] = None,
    ) -> None:
        self.provider = provider
        self.corpus = corpus
        self.max_tool_rounds = max_tool_rounds
        self.system_prompt = system_prompt or build_system_prompt()

    async def stream(
        self,
        messages: list[dict[str, str]],
        session: Optional[StreamSession] = None,
    ) -> AsyncIterator[dict[str, Any]]:
        session = session or StreamSession()
        logger = get_stream_logger("chat", session.id)
        history = build_conversation(messages, self.system_prompt)
        search_tool = build_search_tool()
        rounds = 0
        session.start()
        logger.info("chat_stream_start %s", safe_json({"messages": len(messages)}))
        try:
            while True:
                tools = [search_tool] if rounds < self.max_tool_rounds else None
                text_parts: list[str] = []
                answered: list[tuple[ToolCallRequest, str]] = []
                events = self.provider.stream(history, tools)
                try:
                    async for event in events:
                        if isinstance(event, ContentDelta):
                            text_parts.append(event.text)
                            yield content_frame(event.text)
                        elif isinstance(event, ToolCallRequest):
                            session.begin_tool_call(event)
                            result = run_tool_call(event, self.corpus, session.id)
                            answered.append((event, result))
                            yield tool_result_frame(event.id, result)
                            session.complete_tool_call(event.id)
                finally:
                    await events.aclose()
                if not answered:
                    session.finish()
                    logger.info(
                        "chat_stream_done %s",
                        safe_json({"rounds": rounds + 1, "tool_calls": session.tool_calls_handled}),
                    )
                    yield DONE_FRAME
                    return
                history.append(_assistant_tool_message("".join(text_parts), answered))
                for call, result in answered:
                    history.append({"role": "tool", "tool_call_id": call.id, "content": result})
                rounds += 1
        except ProviderStreamError as exc:
            session.fail(str(exc))
            logger.error("chat_stream_error %s", safe_json({"error": str(exc)}))
            yield error_frame(str(exc))
        except Exception as exc:
            if not session.terminal:
                session.fail(str(exc))
            logger.exception("chat_stream_error %s", safe_json({"error": str(exc)}))
            yield error_frame("Internal server error")


def _assistant_tool_message(
    text: str,
    answered: list[tuple[ToolCallRequest, str]],
) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": text or None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": call.arguments or "{}"},
            }
            for call, _ in answered
        ],
    }
