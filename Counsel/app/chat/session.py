from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from Counsel.app.logging_utils import new_stream_id
from Counsel.app.models import ToolCallRequest


class StreamPhase(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    AWAITING_TOOL_RESULT = "awaiting_tool_result"
    DONE = "done"
    ERROR = "error"


_TRANSITIONS = {
    StreamPhase.IDLE: {StreamPhase.STREAMING, StreamPhase.ERROR},
    StreamPhase.STREAMING: {
        StreamPhase.AWAITING_TOOL_RESULT,
        StreamPhase.DONE,
        StreamPhase.ERROR,
    },
    StreamPhase.AWAITING_TOOL_RESULT: {StreamPhase.STREAMING, StreamPhase.ERROR},
    StreamPhase.DONE: set(),
    StreamPhase.ERROR: set(),
}


class StreamSession:
    """Phase bookkeeping for one client stream. Never shared between connections."""

    def __init__(self, stream_id: Optional[str] = None) -> None:
        self.id = stream_id or new_stream_id()
        self.phase = StreamPhase.IDLE
        self.pending_tool_calls: Dict[str, ToolCallRequest] = {}
        self.error: Optional[str] = None
        self.tool_calls_handled = 0

    @property
    def terminal(self) -> bool:
        return self.phase in {StreamPhase.DONE, StreamPhase.ERROR}

    def start(self) -> None:
        self._transition(StreamPhase.STREAMING)

    def begin_tool_call(self, call: ToolCallRequest) -> None:
        self._transition(StreamPhase.AWAITING_TOOL_RESULT)
        self.pending_tool_calls[call.id] = call

    def complete_tool_call(self, call_id: str) -> ToolCallRequest:
        if call_id not in self.pending_tool_calls:
            raise RuntimeError(f"No pending tool call with id {call_id}")
        self._transition(StreamPhase.STREAMING)
        self.tool_calls_handled += 1
        return self.pending_tool_calls.pop(call_id)

    def finish(self) -> None:
        self._transition(StreamPhase.DONE)

    def fail(self, message: str) -> None:
        self._transition(StreamPhase.ERROR)
        self.error = message
        self.pending_tool_calls.clear()

    def _transition(self, target: StreamPhase) -> None:
        if target not in _TRANSITIONS[self.phase]:
            raise RuntimeError(
                f"Illegal stream transition {self.phase.value} -> {target.value}"
            )
        self.phase = target
