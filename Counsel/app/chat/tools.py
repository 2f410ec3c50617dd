from __future__ import annotations

from typing import Any
import json

from Counsel.app.chat.prompt import SEARCH_TOOL_NAME
from Counsel.app.errors import ToolArgumentError
from Counsel.app.legal.corpus import Corpus
from Counsel.app.legal.retrieval import search_law_articles
from Counsel.app.logging_utils import get_stream_logger, safe_json
from Counsel.app.models import ToolCallRequest


DEFAULT_TOOL_LIMIT = 5


def parse_tool_arguments(raw_arguments: str) -> tuple[str, int]:
    try:
        data = json.loads(raw_arguments or "{}")
    except json.JSONDecodeError as exc:
        raise ToolArgumentError("arguments must be a JSON object") from exc
    if not isinstance(data, dict):
        raise ToolArgumentError("arguments must be a JSON object")
    query = data.get("query")
    if not isinstance(query, str):
        raise ToolArgumentError("query must be a string")
    return query, _parse_limit(data.get("limit"))


def run_tool_call(call: ToolCallRequest, corpus: Corpus, stream_id: str = "-") -> str:
    """Execute one tool call and return the JSON text sent back as its result."""
    logger = get_stream_logger("chat.tools", stream_id)
    if call.name != SEARCH_TOOL_NAME:
        logger.warning("tool_unknown %s", safe_json({"id": call.id, "name": call.name}))
        return _dump({"error": f"Unknown tool: {call.name}"})
    try:
        query, limit = parse_tool_arguments(call.arguments)
    except ToolArgumentError as exc:
        logger.warning(
            "tool_arguments_invalid %s",
            safe_json({"id": call.id, "arguments": call.arguments, "error": str(exc)}),
        )
        return _dump({"error": "Failed to search law articles", "detail": str(exc)})
    results = search_law_articles(query, corpus.articles, limit)
    logger.info(
        "tool_search %s",
        safe_json(
            {
                "id": call.id,
                "query": query,
                "limit": limit,
                "articles": [article.number for article in results],
            }
        ),
    )
    return _dump([article.to_dict() for article in results])


def _parse_limit(value: Any) -> int:
    if value is None:
        return DEFAULT_TOOL_LIMIT
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ToolArgumentError("limit must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ToolArgumentError("limit must be an integer")
    limit = int(value)
    if limit < 0:
        raise ToolArgumentError("limit must not be negative")
    return limit or DEFAULT_TOOL_LIMIT


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)
