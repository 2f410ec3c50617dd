from dataclasses import dataclass, field
from typing import Any, Tuple


@dataclass(frozen=True)
class Article:
    number: int
    title: str = ""
    text: str = ""
    chapter: str = ""
    part: str = ""
    law_source: str = ""
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "article": self.number,
            "title": self.title,
            "chapter": self.chapter,
            "part": self.part,
            "text": self.text,
            "tags": list(self.tags),
        }
        if self.law_source:
            data["lawSource"] = self.law_source
        return data


@dataclass(frozen=True)
class ScoredCandidate:
    article: Article
    score: int


@dataclass(frozen=True)
class ContentDelta:
    text: str


@dataclass(frozen=True)
class ToolCallRequest:
    id: str
    name: str
    arguments: str
