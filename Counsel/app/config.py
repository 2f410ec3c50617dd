from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os

from Counsel.app.logging_utils import setup_logging


DEFAULT_MODEL = "gpt-4o"
DEFAULT_FRONTEND_URL = "http://localhost:8080"
DEFAULT_JURISDICTION = "South Sudan"


@dataclass(frozen=True)
class AppConfig:
    openai_api_key: str
    openai_base_url: Optional[str]
    model: str
    law_data_path: Path
    frontend_url: str = DEFAULT_FRONTEND_URL
    jurisdiction: str = DEFAULT_JURISDICTION
    rate_limit_max: int = 30
    rate_limit_window_seconds: int = 60
    max_tool_rounds: int = 4
    max_body_bytes: int = 10 * 1024 * 1024

    @staticmethod
    def from_env(law_data_path: Optional[Path] = None, model: Optional[str] = None) -> "AppConfig":
        _load_dotenv()
        setup_logging()
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        base_url = os.getenv("OPENAI_BASE_URL") or None
        selected_model = model or os.getenv("OPENAI_MODEL", "").strip()
        if not selected_model:
            selected_model = DEFAULT_MODEL
        if law_data_path is None:
            law_data_raw = os.getenv("LAW_DATA_PATH", "").strip()
            if law_data_raw:
                law_data_path = Path(law_data_raw)
            else:
                law_data_path = Path.cwd() / "data" / "law.json"
        frontend_url = os.getenv("FRONTEND_URL", "").strip() or DEFAULT_FRONTEND_URL
        jurisdiction = os.getenv("LAW_JURISDICTION", "").strip() or DEFAULT_JURISDICTION
        return AppConfig(
            openai_api_key=api_key,
            openai_base_url=base_url,
            model=selected_model,
            law_data_path=law_data_path.expanduser().resolve(),
            frontend_url=frontend_url,
            jurisdiction=jurisdiction,
            rate_limit_max=_int_from_env("RATE_LIMIT_MAX", 30, minimum=1),
            rate_limit_window_seconds=_int_from_env(
                "RATE_LIMIT_WINDOW_SECONDS", 60, minimum=1
            ),
            max_tool_rounds=_int_from_env("MAX_TOOL_ROUNDS", 4, minimum=1),
            max_body_bytes=_int_from_env(
                "MAX_BODY_BYTES", 10 * 1024 * 1024, minimum=1024
            ),
        )


def _int_from_env(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


def _load_dotenv() -> None:
    env_path = Path(__file__).resolve().parents[2] / ".env"
    if not env_path.exists():
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        text = line.strip()
        if not text or text.startswith("#") or "=" not in text:
            continue
        key, value = text.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value
