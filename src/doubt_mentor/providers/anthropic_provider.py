import anthropic
from loguru import logger

from doubt_mentor.errors import ProviderError


def _to_anthropic_messages(history: list[dict], question: str) -> list[dict]:
    """Build a user-first, strictly alternating message list; adjacent same-role turns are merged."""
    messages: list[dict] = []
    for msg in [*history, {"role": "user", "content": question}]:
        role = "assistant" if msg.get("role") == "assistant" else "user"
        content = msg.get("content") or ""
        if not messages and role == "assistant":
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] = f"{messages[-1]['content']}\n\n{content}"
            continue
        messages.append({"role": role, "content": content})
    return messages


class AnthropicProvider:
    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
    ):
        self._client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def name(self) -> str:
        return f"anthropic:{self._model}"

    async def generate(self, system_prompt: str, history: list[dict], question: str) -> str:
        messages = _to_anthropic_messages(history, question)

        logger.debug(f"API request: model={self._model}, messages={len(messages)}")
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system=system_prompt,
                messages=messages,
            )
        except anthropic.APIStatusError as ex:
            raise ProviderError(self.name, f"HTTP {ex.status_code}", status_code=ex.status_code) from ex
        except anthropic.APIError as ex:
            raise ProviderError(self.name, type(ex).__name__) from ex

        usage = response.usage
        logger.debug(
            f"API response: stop_reason={response.stop_reason}, "
            f"input_tokens={usage.input_tokens}, output_tokens={usage.output_tokens}"
        )
        text = "".join(block.text for block in response.content if block.type == "text")
        if not text.strip():
            raise ProviderError(self.name, "empty response text")
        return text
