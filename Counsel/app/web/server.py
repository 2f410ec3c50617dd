from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any
import argparse
import json

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from Counsel.app.chat.orchestrator import ChatOrchestrator
from Counsel.app.chat.prompt import build_system_prompt
from Counsel.app.config import AppConfig
from Counsel.app.errors import AdmissionError, ValidationError
from Counsel.app.guard.rate_limit import RateLimiter
from Counsel.app.guard.validation import ensure_valid_chat_payload
from Counsel.app.legal.corpus import Corpus, load_corpus
from Counsel.app.legal.retrieval import DEFAULT_LIMIT, search_law_articles
from Counsel.app.llm.openai_client import OpenAIChatProvider
from Counsel.app.logging_utils import get_logger, safe_json
from Counsel.app.web.sse import SSE_HEADERS, SSE_MEDIA_TYPE, frame_stream


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'",
}


def create_app(
    config: AppConfig,
    corpus: Corpus | None = None,
    provider=None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    app = FastAPI(title="Law Counsel")
    logger = get_logger("api")
    if corpus is None:
        corpus = load_corpus(config.law_data_path)
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            max_requests=config.rate_limit_max,
            window_seconds=config.rate_limit_window_seconds,
        )
    app.state.corpus = corpus
    app.state.provider = provider
    app.state.rate_limiter = rate_limiter
    system_prompt = build_system_prompt(config.jurisdiction)

    def get_provider():
        if app.state.provider is None:
            app.state.provider = OpenAIChatProvider.from_config(config)
        return app.state.provider

    @app.middleware("http")
    async def guard_requests(request: Request, call_next):
        if request.url.path.startswith("/api/"):
            response = _reject_oversized(request, config.max_body_bytes)
            if response is None:
                try:
                    rate_limiter.enforce(_client_key(request))
                except AdmissionError as exc:
                    response = _rate_limited(exc.retry_after_seconds)
            if response is None:
                response = await call_next(request)
        else:
            response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.post("/api/chat/stream")
    async def chat_stream(request: Request):
        body = await _read_limited_body(request, config.max_body_bytes)
        if body is None:
            logger.info("api_status %s", safe_json({"path": "/api/chat/stream", "status": "error", "error": "body too large"}))
            return _too_large()
        payload = _parse_json(body)
        if payload is None:
            logger.info("api_status %s", safe_json({"path": "/api/chat/stream", "status": "error", "error": "invalid json"}))
            return JSONResponse({"error": "Invalid request: body must be valid JSON"}, status_code=400)
        try:
            messages = ensure_valid_chat_payload(payload)
        except ValidationError as exc:
            logger.info("api_status %s", safe_json({"path": "/api/chat/stream", "status": "error", "error": exc.reason}))
            return JSONResponse({"error": exc.reason}, status_code=400)
        logger.info("chat_request %s", safe_json({"messages": len(messages), "client": _client_key(request)}))
        try:
            orchestrator = ChatOrchestrator(
                provider=get_provider(),
                corpus=corpus,
                max_tool_rounds=config.max_tool_rounds,
                system_prompt=system_prompt,
            )
        except Exception as exc:
            logger.error("api_status %s", safe_json({"path": "/api/chat/stream", "status": "error", "error": str(exc)}))
            return JSONResponse(
                {"error": "Internal server error", "message": str(exc)},
                status_code=500,
            )
        return StreamingResponse(
            frame_stream(request, orchestrator.stream(messages)),
            media_type=SSE_MEDIA_TYPE,
            headers=SSE_HEADERS,
        )

    @app.get("/api/search")
    async def search(q: str | None = None, k: str | None = None, source: str | None = None):
        if not q:
            return JSONResponse({"error": 'Query parameter "q" is required'}, status_code=400)
        limit = _parse_positive_int(k, DEFAULT_LIMIT)
        if limit is None:
            return JSONResponse({"error": 'Invalid value for parameter "k"'}, status_code=400)
        results = search_law_articles(q, corpus.articles, limit, law_source=source)
        logger.info("search_request %s", safe_json({"query": q, "k": limit, "count": len(results)}))
        return JSONResponse(
            {
                "query": q,
                "k": limit,
                "count": len(results),
                "matches": [
                    {"rank": index, **article.to_dict()}
                    for index, article in enumerate(results, start=1)
                ],
            }
        )

    @app.get("/api/test")
    async def diagnostics():
        return JSONResponse(
            {
                "message": "AI Law Server is running",
                "lawArticlesLoaded": len(corpus),
                "lawSources": corpus.law_sources(),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    @app.get("/api/test-key")
    async def diagnostics_key():
        try:
            reply = await get_provider().ping()
        except Exception as exc:
            logger.error("api_status %s", safe_json({"path": "/api/test-key", "status": "error", "error": str(exc)}))
            return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
        return JSONResponse(
            {"success": True, "message": "API key test successful", "response": reply}
        )

    return app


def _client_key(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _reject_oversized(request: Request, max_body_bytes: int) -> JSONResponse | None:
    length = request.headers.get("content-length", "")
    if length.isdigit() and int(length) > max_body_bytes:
        return _too_large()
    return None


def _too_large() -> JSONResponse:
    return JSONResponse({"error": "Request body too large"}, status_code=413)


def _rate_limited(retry_after: int) -> JSONResponse:
    return JSONResponse(
        {
            "error": "Too many requests",
            "message": "Please wait before making another request",
            "retryAfter": retry_after,
        },
        status_code=429,
        headers={"Retry-After": str(retry_after)},
    )


def _parse_positive_int(raw: str | None, default: int) -> int | None:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return None
    if value < 1:
        return None
    return value


async def _read_limited_body(request: Request, max_body_bytes: int) -> bytes | None:
    """Read the body, giving up once it passes ``max_body_bytes``.

    Chunked uploads carry no Content-Length, so the middleware check alone
    cannot catch them.
    """
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_body_bytes:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def _parse_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except ValueError:
        return None


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--law-data")
    parser.add_argument("--model")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3001)
    args = parser.parse_args()

    law_data = Path(args.law_data).resolve() if args.law_data else None
    config = AppConfig.from_env(law_data_path=law_data, model=args.model)
    app = create_app(config)

    import uvicorn

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
