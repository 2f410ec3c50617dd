from __future__ import annotations

from typing import Any, AsyncIterator, Optional, Union

from Counsel.app.config import AppConfig
from Counsel.app.errors import ProviderStreamError
from Counsel.app.logging_utils import get_logger, is_llm_content_logging_enabled, safe_json
from Counsel.app.models import ContentDelta, ToolCallRequest


ProviderEvent = Union[ContentDelta, ToolCallRequest]


def create_openai_client(api_key: str, base_url: Optional[str]):
    from openai import AsyncOpenAI

    if not api_key:
        raise ValueError("OPENAI_API_KEY is required")
    _ensure_ascii_header(api_key, "OPENAI_API_KEY")
    if base_url:
        _ensure_ascii_header(base_url, "OPENAI_BASE_URL")
    if base_url:
        return AsyncOpenAI(api_key=api_key, base_url=base_url)
    return AsyncOpenAI(api_key=api_key)


class OpenAIChatProvider:
    def __init__(self, client, model: str, temperature: float = 0.2) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_config(cls, config: AppConfig) -> "OpenAIChatProvider":
        client = create_openai_client(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
        )
        return cls(client=client, model=config.model)

    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> AsyncIterator[ProviderEvent]:
        return stream_chat_events(
            client=self.client,
            model=self.model,
            messages=messages,
            tools=tools,
            temperature=self.temperature,
        )

    async def ping(self) -> str:
        return await complete_once(
            client=self.client,
            model=self.model,
            prompt="Say 'API key test successful'",
        )


async def stream_chat_events(
    client,
    model: str,
    messages: list[dict[str, Any]],
    tools: Optional[list[dict[str, Any]]] = None,
    temperature: float = 0.2,
) -> AsyncIterator[ProviderEvent]:
    """Stream one completion round as ``ContentDelta`` and ``ToolCallRequest`` events.

    Tool-call fragments are accumulated per index and emitted once the
    provider finishes the round. Provider failures surface as
    ``ProviderStreamError`` carrying a client-presentable message.
    """
    logger = get_logger("llm.chat")
    payload: dict[str, Any] = {
        "model": model,
        "temperature": temperature,
        "messages": len(messages),
        "tools": [tool["function"]["name"] for tool in tools or []],
    }
    if is_llm_content_logging_enabled():
        payload["history"] = messages
    logger.info("llm_request %s", safe_json(payload))
    request: dict[str, Any] = {
        "model": model,
        "temperature": temperature,
        "messages": messages,
        "stream": True,
    }
    if tools:
        request["tools"] = tools
    try:
        stream = await client.chat.completions.create(**request)
    except Exception as exc:
        logger.error("llm_status %s", safe_json({"status": "error", "error": str(exc)}))
        raise ProviderStreamError(describe_provider_error(exc)) from exc
    pending: dict[int, dict[str, str]] = {}
    finish_reason = None
    try:
        async for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = choice.delta
            if delta is not None:
                if delta.content:
                    yield ContentDelta(text=delta.content)
                for fragment in delta.tool_calls or []:
                    _merge_tool_call_fragment(pending, fragment)
            if choice.finish_reason:
                finish_reason = choice.finish_reason
    except Exception as exc:
        logger.error("llm_status %s", safe_json({"status": "error", "error": str(exc)}))
        raise ProviderStreamError(describe_provider_error(exc)) from exc
    finally:
        await stream.close()
    logger.info(
        "llm_status %s",
        safe_json(
            {
                "status": "success",
                "finish_reason": finish_reason,
                "tool_calls": len(pending),
            }
        ),
    )
    for index in sorted(pending):
        slot = pending[index]
        yield ToolCallRequest(
            id=slot["id"] or f"call_{index}",
            name=slot["name"],
            arguments=slot["arguments"],
        )


async def complete_once(client, model: str, prompt: str, temperature: float = 0) -> str:
    logger = get_logger("llm.chat")
    logger.info("llm_request %s", safe_json({"model": model, "mode": "single"}))
    try:
        response = await client.chat.completions.create(
            model=model,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        message = response.choices[0].message
        content = message.content if message else None
        if not content:
            raise ValueError("OpenAI response was empty")
        logger.info("llm_status %s", safe_json({"status": "success"}))
        return content
    except Exception as exc:
        logger.error("llm_status %s", safe_json({"status": "error", "error": str(exc)}))
        raise


def describe_provider_error(exc: Exception) -> str:
    import openai

    message = str(exc)
    if isinstance(exc, openai.AuthenticationError):
        return "Invalid API key. Please check your OpenAI API key."
    if "quota" in message.lower():
        return "API quota exceeded. Please check your OpenAI billing."
    if isinstance(exc, openai.RateLimitError):
        return "Rate limit exceeded. Please try again later."
    return f"OpenAI error: {message}"


def _merge_tool_call_fragment(pending: dict[int, dict[str, str]], fragment) -> None:
    slot = pending.setdefault(fragment.index, {"id": "", "name": "", "arguments": ""})
    if fragment.id:
        slot["id"] = fragment.id
    function = fragment.function
    if function is None:
        return
    if function.name:
        slot["name"] = function.name
    if function.arguments:
        slot["arguments"] += function.arguments


def _ensure_ascii_header(value: str, name: str) -> None:
    try:
        value.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError(
            f"{name} must be ASCII. Remove non-ASCII characters from the value."
        ) from exc
