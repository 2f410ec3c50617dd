from typing import List, Optional, Sequence
import re

from Counsel.app.models import Article, ScoredCandidate


DEFAULT_LIMIT = 3
ARTICLE_NUMBER_PATTERN = re.compile(r"^(?:article\s*)?([0-9]+)$")

PHRASE_SCORE = 200
TITLE_PHRASE_SCORE = 150
TAG_PHRASE_SCORE = 100
TOKEN_SCORE = 20
TITLE_PREFIX_SCORE = 50
MIN_TOKEN_LENGTH = 3


def search_law_articles(
    query: str,
    articles: Sequence[Article],
    limit: int = DEFAULT_LIMIT,
    law_source: Optional[str] = None,
) -> List[Article]:
    """Rank ``articles`` against ``query``.

    A bare number or "article N" returns that single article (or nothing).
    Any other query is scored by phrase, title, tag and token matches; ties
    keep corpus order. An empty query returns the first ``limit`` articles.
    """
    candidates = _filter_by_source(articles, law_source)
    normalized_query = (query or "").lower().strip()
    match = ARTICLE_NUMBER_PATTERN.match(normalized_query)
    if match:
        return _find_by_number(candidates, int(match.group(1)))
    if limit <= 0:
        return []
    if not normalized_query:
        return list(candidates[:limit])
    scored = score_articles(normalized_query, candidates)
    scored.sort(key=lambda item: item.score, reverse=True)
    return [item.article for item in scored[:limit]]


def score_articles(
    normalized_query: str,
    articles: Sequence[Article],
) -> List[ScoredCandidate]:
    tokens = _tokenize(normalized_query)
    scored = []
    for article in articles:
        score = _score_article(normalized_query, tokens, article)
        if score > 0:
            scored.append(ScoredCandidate(article=article, score=score))
    return scored


def _score_article(normalized_query: str, tokens: List[str], article: Article) -> int:
    search_field = _search_field(article)
    title = article.title.lower()
    score = 0
    if normalized_query in search_field:
        score += PHRASE_SCORE
    if normalized_query in title:
        score += TITLE_PHRASE_SCORE
    if any(normalized_query in tag.lower() for tag in article.tags):
        score += TAG_PHRASE_SCORE
    for token in tokens:
        if token in search_field:
            score += TOKEN_SCORE
    if title.startswith(normalized_query):
        score += TITLE_PREFIX_SCORE
    return score


def _tokenize(normalized_query: str) -> List[str]:
    return [word for word in normalized_query.split() if len(word) >= MIN_TOKEN_LENGTH]


def _search_field(article: Article) -> str:
    parts = [article.title, article.text, article.chapter, article.part, *article.tags]
    return " ".join(parts).lower()


def _find_by_number(articles: Sequence[Article], number: int) -> List[Article]:
    for article in articles:
        if article.number == number:
            return [article]
    return []


def _filter_by_source(
    articles: Sequence[Article],
    law_source: Optional[str],
) -> Sequence[Article]:
    if not law_source or not law_source.strip():
        return articles
    wanted = law_source.strip().lower()
    return [article for article in articles if article.law_source.lower() == wanted]
