from __future__ import annotations

from typing import Any

from Counsel.app.errors import ValidationError


MAX_MESSAGES = 50
MAX_CONTENT_CHARS = 5000
ALLOWED_ROLES = {"user", "assistant", "system"}


def validate_chat_payload(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return "Invalid request: body must be a JSON object"
    messages = payload.get("messages", [])
    if not isinstance(messages, list):
        return "Invalid request: messages must be an array"
    if not messages:
        return "Invalid request: messages array is empty"
    if len(messages) > MAX_MESSAGES:
        return "Too many messages in conversation"
    for message in messages:
        if not isinstance(message, dict):
            return "Invalid message format"
        role = message.get("role")
        content = message.get("content")
        if not role or content is None or content == "":
            return "Invalid message format"
        if not isinstance(role, str) or role not in ALLOWED_ROLES:
            return "Invalid message role"
        if not isinstance(content, str):
            return "Message content must be a string"
        if len(content) > MAX_CONTENT_CHARS:
            return f"Message too long (max {MAX_CONTENT_CHARS} characters)"
    return None


def ensure_valid_chat_payload(payload: Any) -> list[dict[str, str]]:
    reason = validate_chat_payload(payload)
    if reason:
        raise ValidationError(reason)
    return [
        {"role": message["role"], "content": message["content"]}
        for message in payload["messages"]
    ]
