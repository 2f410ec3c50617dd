from __future__ import annotations

from typing import Any, AsyncGenerator, AsyncIterator
import json

import anyio
from fastapi import Request

from Counsel.app.logging_utils import get_logger, safe_json


SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_frame(frame: dict[str, Any]) -> str:
    return f"data: {json.dumps(frame, ensure_ascii=False)}\n\n"


async def frame_stream(
    request: Request,
    frames: AsyncGenerator[dict[str, Any], None],
) -> AsyncIterator[str]:
    """Encode frames for the wire, stopping as soon as the client goes away.

    Closing ``frames`` releases the provider connection held by the
    orchestrator, also when the response task is cancelled.
    """
    logger = get_logger("api.sse")
    sent = 0
    try:
        async for frame in frames:
            if await request.is_disconnected():
                logger.info("client_disconnected %s", safe_json({"frames_sent": sent}))
                break
            yield encode_frame(frame)
            sent += 1
    finally:
        with anyio.CancelScope(shield=True):
            await frames.aclose()
