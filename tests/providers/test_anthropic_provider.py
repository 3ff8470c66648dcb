import asyncio
import unittest
from types import SimpleNamespace

import anthropic
import httpx

from doubt_mentor.errors import ProviderError
from doubt_mentor.providers.anthropic_provider import AnthropicProvider, _to_anthropic_messages


class _FakeMessages:
    def __init__(self, response=None, error: Exception | None = None):
        self._response = response
        self._error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._response


class _FakeClient:
    def __init__(self, messages: _FakeMessages):
        self.messages = messages


class AnthropicProviderTests(unittest.TestCase):
    def _make_provider(self, messages: _FakeMessages) -> AnthropicProvider:
        provider = AnthropicProvider.__new__(AnthropicProvider)
        provider._client = _FakeClient(messages)
        provider._model = "claude-test"
        provider._max_tokens = 100
        provider._temperature = 0.5
        return provider

    def test_generate_sends_system_history_and_question(self) -> None:
        response = SimpleNamespace(
            stop_reason="end_turn",
            usage=SimpleNamespace(input_tokens=10, output_tokens=5),
            content=[SimpleNamespace(type="text", text="Use $F=ma$.")],
        )
        messages = _FakeMessages(response=response)
        provider = self._make_provider(messages)

        text = asyncio.run(
            provider.generate("sys", [{"role": "user", "content": "q1"}, {"role": "assistant", "content": "a1"}], "q2")
        )

        self.assertEqual("Use $F=ma$.", text)
        call = messages.calls[0]
        self.assertEqual("sys", call["system"])
        self.assertEqual(["user", "assistant", "user"], [m["role"] for m in call["messages"]])
        self.assertEqual("q2", call["messages"][-1]["content"])

    def test_empty_text_raises_provider_error(self) -> None:
        response = SimpleNamespace(
            stop_reason="end_turn",
            usage=SimpleNamespace(input_tokens=1, output_tokens=0),
            content=[],
        )
        provider = self._make_provider(_FakeMessages(response=response))
        with self.assertRaises(ProviderError):
            asyncio.run(provider.generate("sys", [], "q"))

    def test_sdk_error_raises_provider_error(self) -> None:
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        error = anthropic.APIConnectionError(request=request)
        provider = self._make_provider(_FakeMessages(error=error))
        with self.assertRaises(ProviderError):
            asyncio.run(provider.generate("sys", [], "q"))


class ToAnthropicMessagesTests(unittest.TestCase):
    def test_merges_consecutive_user_turns(self) -> None:
        history = [
            {"role": "user", "content": "q1"},
            {"role": "assistant", "content": "a1"},
            {"role": "user", "content": "q2"},
        ]
        messages = _to_anthropic_messages(history, "q3")
        self.assertEqual(["user", "assistant", "user"], [m["role"] for m in messages])
        self.assertEqual("q2\n\nq3", messages[-1]["content"])

    def test_drops_leading_assistant_turn(self) -> None:
        history = [{"role": "assistant", "content": "welcome"}, {"role": "user", "content": "q1"}]
        self.assertEqual([{"role": "user", "content": "q1\n\nq2"}], _to_anthropic_messages(history, "q2"))

    def test_empty_history_is_just_the_question(self) -> None:
        self.assertEqual([{"role": "user", "content": "q"}], _to_anthropic_messages([], "q"))


if __name__ == "__main__":
    unittest.main()
