import unittest

from Counsel.app.legal.retrieval import score_articles, search_law_articles
from Counsel.app.models import Article


def _article(number, title="", text="", tags=(), chapter="", part="", law_source=""):
    return Article(
        number=number,
        title=title,
        text=text,
        chapter=chapter,
        part=part,
        law_source=law_source,
        tags=tuple(tags),
    )


class TestDirectLookup(unittest.TestCase):
    def setUp(self):
        self.articles = [
            _article(1, "Sovereignty", "Sovereignty is vested in the people."),
            _article(25, "Freedom of Assembly", "The right to peaceful assembly 25 times."),
            _article(250, "Public Finance", "Article 25 of the budget law applies."),
        ]

    def test_article_number_forms(self):
        for query in ["25", "article 25", "Article 25", "  ARTICLE25  ", "article   25"]:
            with self.subTest(query=query):
                results = search_law_articles(query, self.articles, 3)
                self.assertEqual([article.number for article in results], [25])

    def test_missing_article_returns_empty(self):
        self.assertEqual(search_law_articles("article 99", self.articles, 3), [])
        self.assertEqual(search_law_articles("7", self.articles, 3), [])

    def test_lookup_ignores_limit(self):
        results = search_law_articles("25", self.articles, 0)
        self.assertEqual([article.number for article in results], [25])

    def test_extra_words_use_scored_path(self):
        # "25" is too short to count as a token on the scored path.
        results = search_law_articles("article 25 budget", self.articles, 3)
        self.assertEqual([article.number for article in results], [250])

    def test_law_source_filter(self):
        articles = [
            _article(1, "Sovereignty", law_source="Transitional Constitution"),
            _article(1, "Definitions", law_source="Penal Code"),
        ]
        default = search_law_articles("article 1", articles, 3)
        self.assertEqual(default[0].title, "Sovereignty")
        filtered = search_law_articles("article 1", articles, 3, law_source="penal code")
        self.assertEqual([article.title for article in filtered], ["Definitions"])


class TestScoredSearch(unittest.TestCase):
    def test_empty_query_returns_corpus_prefix(self):
        articles = [_article(number, f"Title {number}") for number in range(1, 6)]
        for query in ["", "   "]:
            with self.subTest(query=query):
                results = search_law_articles(query, articles, 3)
                self.assertEqual([article.number for article in results], [1, 2, 3])

    def test_default_limit_is_three(self):
        articles = [_article(number, text="tax rules") for number in range(1, 6)]
        self.assertEqual(len(search_law_articles("tax", articles)), 3)

    def test_title_match_outranks_body_mention(self):
        articles = [
            _article(3, "Other Provisions", "Rules about citizenship apply."),
            _article(45, "Citizenship", "Every person born here is a national."),
        ]
        results = search_law_articles("citizenship", articles, 5)
        self.assertEqual([article.number for article in results], [45, 3])

    def test_equal_scores_keep_corpus_order(self):
        articles = [
            _article(10, "Alpha", "tax duties"),
            _article(11, "Beta", "tax relief"),
            _article(12, "Tax", "general"),
            _article(13, "Gamma", "tax appeals"),
        ]
        results = search_law_articles("tax", articles, 10)
        self.assertEqual([article.number for article in results], [12, 10, 11, 13])

    def test_scores_are_descending(self):
        articles = [
            _article(1, "Land", "land and property rights"),
            _article(2, "Property Rights", "ownership of property"),
            _article(3, "Courts", "property disputes in courts"),
            _article(4, "Water", "rivers"),
        ]
        scored = score_articles("property rights", articles)
        scores = {item.article.number: item.score for item in scored}
        results = search_law_articles("property rights", articles, 10)
        ranked = [scores[article.number] for article in results]
        self.assertEqual(ranked, sorted(ranked, reverse=True))
        self.assertNotIn(4, scores)

    def test_score_components(self):
        article = _article(
            9,
            "Bill of Rights",
            "A covenant to respect human rights.",
            tags=["bill of rights", "human rights"],
        )
        scored = score_articles("bill of rights", [article])
        # phrase 200 + title 150 + tag 100 + two tokens 40 + title prefix 50
        self.assertEqual(scored[0].score, 540)

    def test_short_tokens_are_ignored(self):
        articles = [
            _article(1, "Rule of law", "The rule of law binds all."),
            _article(2, "Customs", "The tax on imported goods."),
        ]
        results = search_law_articles("of tax", articles, 5)
        self.assertEqual([article.number for article in results], [2])

    def test_zero_score_excluded(self):
        articles = [_article(1, "Sovereignty", "people")]
        self.assertEqual(search_law_articles("zebra crossing", articles, 5), [])

    def test_search_covers_chapter_part_and_tags(self):
        articles = [
            _article(1, "First", "text", chapter="Chapter on Elections"),
            _article(2, "Second", "text", part="Part Judiciary"),
            _article(3, "Third", "text", tags=["taxation"]),
        ]
        self.assertEqual(search_law_articles("elections", articles, 5)[0].number, 1)
        self.assertEqual(search_law_articles("judiciary", articles, 5)[0].number, 2)
        self.assertEqual(search_law_articles("taxation", articles, 5)[0].number, 3)

    def test_fundamental_rights_prefers_bill_of_rights(self):
        articles = [
            _article(4, "Equality", "All persons are equal and have rights."),
            _article(
                9,
                "Bill of Rights",
                "A covenant to respect human rights and fundamental freedoms.",
                tags=["bill of rights", "human rights"],
            ),
        ]
        results = search_law_articles("fundamental rights", articles, 5)
        self.assertEqual([article.number for article in results], [9, 4])

    def test_non_positive_limit_returns_nothing(self):
        articles = [_article(1, "Tax", "tax")]
        self.assertEqual(search_law_articles("tax", articles, 0), [])
        self.assertEqual(search_law_articles("", articles, -1), [])


if __name__ == "__main__":
    unittest.main()
