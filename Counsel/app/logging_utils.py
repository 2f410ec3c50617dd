from __future__ import annotations

from pathlib import Path
import json
import logging
import os
import threading
import uuid

_lock = threading.Lock()
_configured = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(stream_id)s] %(message)s"


class _StreamIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "stream_id"):
            record.stream_id = "-"
        return True


def setup_logging() -> None:
    global _configured
    if _configured:
        return
    with _lock:
        if _configured:
            return
        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)
        log_path = os.getenv("LOG_PATH", "").strip()
        if not log_path:
            log_path = str(Path.cwd() / "output" / "logs" / "law_counsel.log")
        handlers: list[logging.Handler] = []
        if log_path.lower() not in {"-", "none", "off"}:
            path = Path(log_path).expanduser().resolve()
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(str(path), encoding="utf-8"))
        handlers.append(logging.StreamHandler())
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(_StreamIdFilter())
        logging.basicConfig(level=level, handlers=handlers)
        _configured = True


def get_logger(name: str) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)


def get_stream_logger(name: str, stream_id: str) -> logging.LoggerAdapter:
    """Logger whose records are tagged with one chat stream's id."""
    return logging.LoggerAdapter(get_logger(name), {"stream_id": stream_id})


def new_stream_id() -> str:
    return uuid.uuid4().hex[:12]


def is_llm_content_logging_enabled() -> bool:
    value = os.getenv("LOG_LLM_CONTENT", "false").strip().lower()
    return value in {"1", "true", "yes", "on"}


def safe_json(value) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except Exception:
        return str(value)
