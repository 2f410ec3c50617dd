from pathlib import Path
import argparse
import json
import sys

from Counsel.app.config import AppConfig
from Counsel.app.errors import CorpusError
from Counsel.app.legal.corpus import load_corpus
from Counsel.app.legal.retrieval import DEFAULT_LIMIT, search_law_articles


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Search the law article corpus")
    parser.add_argument("--query", required=True)
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    parser.add_argument("--source")
    parser.add_argument("--law-data")
    parser.add_argument("--output")
    args = parser.parse_args(argv)

    law_data = Path(args.law_data).resolve() if args.law_data else None
    config = AppConfig.from_env(law_data_path=law_data, model=None)
    try:
        corpus = load_corpus(config.law_data_path)
    except CorpusError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    results = search_law_articles(
        args.query,
        corpus.articles,
        args.limit,
        law_source=args.source,
    )
    output_text = json.dumps(
        [article.to_dict() for article in results],
        ensure_ascii=False,
        indent=2,
    )

    if args.output:
        output_path = Path(args.output).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output_text, encoding="utf-8")
    else:
        print(output_text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
