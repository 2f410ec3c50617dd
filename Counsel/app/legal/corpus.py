from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, List, Sequence
import json

from Counsel.app.errors import CorpusError
from Counsel.app.logging_utils import get_logger, safe_json
from Counsel.app.models import Article


class Corpus:
    """Read-only, ordered collection of articles shared by every request."""

    def __init__(self, articles: Sequence[Article]) -> None:
        self._articles = tuple(articles)

    @property
    def articles(self) -> tuple[Article, ...]:
        return self._articles

    def __len__(self) -> int:
        return len(self._articles)

    def __iter__(self) -> Iterator[Article]:
        return iter(self._articles)

    def law_sources(self) -> List[str]:
        seen = []
        for article in self._articles:
            if article.law_source and article.law_source not in seen:
                seen.append(article.law_source)
        return seen


def load_corpus(path: Path) -> Corpus:
    logger = get_logger("legal.corpus")
    target = path.expanduser().resolve()
    if not target.exists():
        raise CorpusError(f"Law data not found: {target}")
    try:
        raw = json.loads(target.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CorpusError(f"Failed to read law data: {target}") from exc
    articles = parse_articles(raw)
    logger.info(
        "corpus_loaded %s",
        safe_json({"path": str(target), "articles": len(articles)}),
    )
    return Corpus(articles)


def parse_articles(records: Any) -> List[Article]:
    if not isinstance(records, list):
        raise CorpusError("Law data must be a JSON array of articles")
    articles = []
    failures = []
    seen_keys = set()
    for index, record in enumerate(records):
        try:
            article = _parse_article(record)
        except ValueError as exc:
            failures.append(f"#{index}: {exc}")
            continue
        key = (article.law_source.lower(), article.number)
        if key in seen_keys:
            failures.append(
                f"#{index}: duplicate article {article.number}"
                + (f" in {article.law_source}" if article.law_source else "")
            )
            continue
        seen_keys.add(key)
        articles.append(article)
    if failures:
        detail = "\n".join(failures)
        raise CorpusError("Invalid law articles:\n" + detail)
    return articles


def _parse_article(record: Any) -> Article:
    if not isinstance(record, dict):
        raise ValueError("article record must be an object")
    number = _parse_number(record.get("article"))
    tags = record.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise ValueError("tags must be a list of strings")
    return Article(
        number=number,
        title=_text_field(record, "title"),
        text=_text_field(record, "text"),
        chapter=_text_field(record, "chapter"),
        part=_text_field(record, "part"),
        law_source=_text_field(record, "lawSource"),
        tags=tuple(tags),
    )


def _parse_number(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("article number must be an integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValueError("article number must be an integer")
    if number <= 0:
        raise ValueError("article number must be positive")
    return number


def _text_field(record: dict, key: str) -> str:
    value = record.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value
