import httpx
from loguru import logger

from doubt_mentor.errors import ProviderError

_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"


def _to_gemini_contents(system_prompt: str, history: list[dict], question: str) -> list[dict]:
    """Build generateContent `contents`; the system prompt leads as a user turn."""
    contents: list[dict] = []
    if system_prompt:
        contents.append({"role": "user", "parts": [{"text": system_prompt}]})
    for msg in history:
        role = "model" if msg.get("role") == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": msg.get("content") or ""}]})
    contents.append({"role": "user", "parts": [{"text": question}]})
    return contents


def _extract_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts:
        return ""
    return str(parts[0].get("text") or "")


class GeminiProvider:
    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        version: str = "v1beta",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
        json_mode: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._version = version
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout_seconds = timeout_seconds
        self._json_mode = json_mode
        self._transport = transport

    @property
    def name(self) -> str:
        return f"gemini:{self._model}"

    async def generate(self, system_prompt: str, history: list[dict], question: str) -> str:
        if not self._api_key:
            raise ProviderError(self.name, "missing GEMINI_API_KEY")

        url = f"{_GEMINI_BASE_URL}/{self._version}/models/{self._model}:generateContent"
        generation_config: dict = {
            "maxOutputTokens": self._max_tokens,
            "temperature": self._temperature,
        }
        if self._json_mode:
            generation_config["responseMimeType"] = "application/json"
        body = {
            "contents": _to_gemini_contents(system_prompt, history, question),
            "generationConfig": generation_config,
        }

        logger.debug(f"API request: model={self._model}, version={self._version}, history={len(history)}")
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.post(url, params={"key": self._api_key}, json=body)
        except httpx.HTTPError as ex:
            raise ProviderError(self.name, f"{type(ex).__name__}: {ex}") from ex

        if response.status_code >= 400:
            raise ProviderError(
                self.name,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as ex:
            raise ProviderError(self.name, "unparseable response body") from ex

        text = _extract_text(data) if isinstance(data, dict) else ""
        if not text.strip():
            raise ProviderError(self.name, "empty candidate text")
        logger.debug(f"API response: model={self._model}, len={len(text)}")
        return text
