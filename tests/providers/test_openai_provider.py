import asyncio
import unittest
from types import SimpleNamespace

import httpx
import openai

from doubt_mentor.errors import ProviderError
from doubt_mentor.providers.openai_provider import OpenAIProvider, _to_openai_messages


class ToOpenAIMessagesTests(unittest.TestCase):
    def test_system_prompt_becomes_system_message(self) -> None:
        result = _to_openai_messages("You are helpful.", [], "hi")
        self.assertEqual(["system", "user"], [m["role"] for m in result])
        self.assertEqual("You are helpful.", result[0]["content"])

    def test_history_roles_are_preserved(self) -> None:
        result = _to_openai_messages(
            "",
            [{"role": "user", "content": "q1"}, {"role": "assistant", "content": "a1"}],
            "q2",
        )
        self.assertEqual(["user", "assistant", "user"], [m["role"] for m in result])
        self.assertEqual("q2", result[-1]["content"])


class _FakeCompletions:
    def __init__(self, response=None, error: Exception | None = None):
        self._response = response
        self._error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._response


class OpenAIProviderTests(unittest.TestCase):
    def _make_provider(self, completions: _FakeCompletions, json_mode: bool = False) -> OpenAIProvider:
        provider = OpenAIProvider.__new__(OpenAIProvider)
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        provider._model = "gpt-test"
        provider._max_tokens = 100
        provider._temperature = 0.2
        provider._json_mode = json_mode
        return provider

    def test_generate_returns_message_content(self) -> None:
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="Answer"))])
        completions = _FakeCompletions(response=response)
        provider = self._make_provider(completions)

        self.assertEqual("Answer", asyncio.run(provider.generate("sys", [], "q")))
        self.assertNotIn("response_format", completions.calls[0])

    def test_json_mode_sets_response_format(self) -> None:
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content='{"index": 0}'))])
        completions = _FakeCompletions(response=response)
        provider = self._make_provider(completions, json_mode=True)

        asyncio.run(provider.generate("", [], "pick"))
        self.assertEqual({"type": "json_object"}, completions.calls[0]["response_format"])

    def test_empty_choices_raise_provider_error(self) -> None:
        provider = self._make_provider(_FakeCompletions(response=SimpleNamespace(choices=[])))
        with self.assertRaises(ProviderError):
            asyncio.run(provider.generate("sys", [], "q"))

    def test_sdk_timeout_raises_provider_error(self) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        provider = self._make_provider(_FakeCompletions(error=openai.APITimeoutError(request=request)))
        with self.assertRaises(ProviderError):
            asyncio.run(provider.generate("sys", [], "q"))


if __name__ == "__main__":
    unittest.main()
