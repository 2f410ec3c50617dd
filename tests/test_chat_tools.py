import json
import unittest

from Counsel.app.chat.orchestrator import ChatOrchestrator
from Counsel.app.chat.session import StreamSession
from Counsel.app.chat.tools import parse_tool_arguments, run_tool_call
from Counsel.app.errors import ToolArgumentError
from Counsel.app.legal.corpus import Corpus
from Counsel.app.models import Article, ContentDelta, ToolCallRequest


class TestToolArguments(unittest.TestCase):
    def test_valid_arguments(self):
        self.assertEqual(parse_tool_arguments('{"query": "citizenship"}'), ("citizenship", 5))
        self.assertEqual(parse_tool_arguments('{"query": "rights", "limit": 2}'), ("rights", 2))
        self.assertEqual(parse_tool_arguments('{"query": "rights", "limit": 3.0}'), ("rights", 3))
        self.assertEqual(parse_tool_arguments('{"query": "rights", "limit": 0}'), ("rights", 5))
        self.assertEqual(parse_tool_arguments('{"query": "rights", "limit": 500}'), ("rights", 500))

    def test_invalid_arguments(self):
        for raw in [
            "not json",
            "[1, 2]",
            "{}",
            '{"query": 25}',
            '{"query": "x", "limit": "3"}',
            '{"query": "x", "limit": 2.5}',
            '{"query": "x", "limit": true}',
            '{"query": "x", "limit": -1}',
        ]:
            with self.subTest(raw=raw):
                with self.assertRaises(ToolArgumentError):
                    parse_tool_arguments(raw)

    def test_run_tool_call_serializes_articles(self):
        corpus = Corpus(
            [
                Article(number=24, title="Freedom of Expression", text="Speech and media."),
                Article(number=25, title="Freedom of Assembly", text="Peaceful assembly."),
            ]
        )
        call = ToolCallRequest("call_1", "search_law_articles", '{"query": "freedom", "limit": 1}')
        self.assertEqual(
            json.loads(run_tool_call(call, corpus)),
            [
                {
                    "article": 24,
                    "title": "Freedom of Expression",
                    "chapter": "",
                    "part": "",
                    "text": "Speech and media.",
                    "tags": [],
                }
            ],
        )

    def test_run_tool_call_honours_large_limit(self):
        corpus = Corpus(
            [Article(number=n, title=f"Rights {n}", text="Human rights.") for n in range(1, 31)]
        )
        call = ToolCallRequest("call_1", "search_law_articles", '{"query": "rights", "limit": 25}')
        results = json.loads(run_tool_call(call, corpus))
        self.assertEqual([item["article"] for item in results], list(range(1, 26)))


class TestStreamLogging(unittest.IsolatedAsyncioTestCase):
    async def test_records_carry_stream_id(self):
        class OneRoundProvider:
            def stream(self, messages, tools=None):
                return self._run()

            async def _run(self):
                yield ContentDelta("hi")

        session = StreamSession(stream_id="abc123")
        orchestrator = ChatOrchestrator(OneRoundProvider(), Corpus([]))
        with self.assertLogs("chat", level="INFO") as captured:
            async for _ in orchestrator.stream([{"role": "user", "content": "hello"}], session=session):
                pass
        self.assertTrue(captured.records)
        self.assertTrue(all(record.stream_id == "abc123" for record in captured.records))


if __name__ == "__main__":
    unittest.main()
