"""
Tests for flattening Anthropic responses (no network access).
"""

import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

import fakes  # noqa: F401  (silences console logging)

from core.errors import TransportError
from llm.anthropic_client import AnthropicClient, AnthropicResponse, WebSearchCitation
from llm.retry import is_rate_limit_error


def sdk_response(blocks, input_tokens=100, output_tokens=50, stop_reason="end_turn"):
    return SimpleNamespace(
        content=blocks,
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
        stop_reason=stop_reason,
    )


class TestParseResponse(unittest.TestCase):

    def setUp(self):
        self.client = AnthropicClient(api_key="test-key")

    def test_text_search_and_citations(self):
        response = sdk_response([
            SimpleNamespace(type="server_tool_use", name="web_search", input={"query": "novel ch 1"}),
            SimpleNamespace(type="web_search_tool_result", content=[
                SimpleNamespace(url="https://a.example/1"),
                SimpleNamespace(url="https://b.example/1"),
            ]),
            SimpleNamespace(type="text", text='{"found": true, ', citations=[
                SimpleNamespace(cited_text="Once", title="Ch 1", url="https://b.example/1"),
            ]),
            SimpleNamespace(type="text", text='"content": "x"}', citations=None),
        ])

        parsed = self.client._parse_response(response)

        self.assertTrue(parsed.success)
        self.assertEqual(parsed.text, '{"found": true, "content": "x"}')
        self.assertEqual(parsed.web_searches_used, 1)
        self.assertEqual(parsed.input_tokens, 100)
        self.assertEqual(parsed.output_tokens, 50)
        self.assertEqual(parsed.stop_reason, "end_turn")
        self.assertEqual(parsed.grounding_urls(), ["https://b.example/1", "https://a.example/1"])

    def test_search_error_block_is_ignored(self):
        response = sdk_response([
            SimpleNamespace(type="web_search_tool_result", content=SimpleNamespace(error_code="max_uses_exceeded")),
            SimpleNamespace(type="text", text="{}", citations=[]),
        ])
        parsed = self.client._parse_response(response)
        self.assertEqual(parsed.search_result_urls, [])
        self.assertEqual(parsed.grounding_urls(), [])

    def test_empty_content(self):
        parsed = self.client._parse_response(SimpleNamespace(content=None, usage=None))
        self.assertTrue(parsed.success)
        self.assertEqual(parsed.text, "")
        self.assertEqual(parsed.input_tokens, 0)


class TestGroundingUrls(unittest.TestCase):

    def test_dedup_and_order(self):
        response = AnthropicResponse(
            text="", input_tokens=0, output_tokens=0, success=True,
            citations=[WebSearchCitation("", "", "https://x"), WebSearchCitation("", "", "")],
            search_result_urls=["https://y", "https://x"],
        )
        self.assertEqual(response.grounding_urls(), ["https://x", "https://y"])


class TestChatFailures(unittest.TestCase):

    def test_failure_is_returned_not_raised(self):
        client = AnthropicClient(api_key="test-key")
        client._client = MagicMock()
        client._client.messages.create.side_effect = RuntimeError("rate limit exceeded, slow down")

        response = client.chat([{"role": "user", "content": "hi"}], enable_web_search=True)

        self.assertFalse(response.success)
        self.assertEqual(response.error_type, "rate_limited")

        error = TransportError(response.error, response.status_code, response.error_type)
        self.assertTrue(is_rate_limit_error(error))

    def test_web_search_tool_attached(self):
        client = AnthropicClient(api_key="test-key", model="claude-test")
        client._client = MagicMock()
        client._client.messages.create.return_value = sdk_response([])

        client.chat(
            [{"role": "user", "content": "hi"}],
            system_prompt="sys",
            enable_web_search=True,
            web_search_max_uses=5,
        )

        kwargs = client._client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "claude-test")
        self.assertEqual(kwargs["system"], "sys")
        self.assertEqual(kwargs["tools"], [{"type": "web_search_20250305", "name": "web_search", "max_uses": 5}])


if __name__ == "__main__":
    unittest.main()
