import openai
from loguru import logger

from doubt_mentor.errors import ProviderError


def _to_openai_messages(system_prompt: str, history: list[dict], question: str) -> list[dict]:
    """Convert the system prompt, history and new question to OpenAI chat format."""
    out: list[dict] = []
    if system_prompt:
        out.append({"role": "system", "content": system_prompt})
    for msg in history:
        role = "assistant" if msg.get("role") == "assistant" else "user"
        out.append({"role": role, "content": msg.get("content") or ""})
    out.append({"role": "user", "content": question})
    return out


class OpenAIProvider:
    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
        json_mode: bool = False,
    ):
        self._client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._json_mode = json_mode

    @property
    def name(self) -> str:
        return f"openai:{self._model}"

    async def generate(self, system_prompt: str, history: list[dict], question: str) -> str:
        oai_messages = _to_openai_messages(system_prompt, history, question)
        kwargs: dict = dict(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            messages=oai_messages,
        )
        if self._json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.debug(f"API request: model={self._model}, messages={len(oai_messages)}")
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as ex:
            raise ProviderError(self.name, f"HTTP {ex.status_code}", status_code=ex.status_code) from ex
        except openai.APIError as ex:
            raise ProviderError(self.name, type(ex).__name__) from ex

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        if not text.strip():
            raise ProviderError(self.name, "empty response text")
        logger.debug(f"API response: model={self._model}, len={len(text)}")
        return text
