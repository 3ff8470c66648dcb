from typing import Protocol, runtime_checkable

from doubt_mentor.app_config import RuntimeEnv
from doubt_mentor.models import ProviderConfig


@runtime_checkable
class AnswerProvider(Protocol):
    @property
    def name(self) -> str: ...

    async def generate(
        self,
        system_prompt: str,
        history: list[dict],
        question: str,
    ) -> str:
        """Return the provider's answer text.

        `history` holds {"role": "user"|"assistant", "content": str} dicts,
        oldest first. Raises ProviderError on transport errors, non-success
        status or an empty payload.
        """
        ...


def create_provider(
    config: ProviderConfig,
    env: RuntimeEnv,
    *,
    max_tokens: int = 1024,
    temperature: float = 0.7,
    timeout_seconds: float = 30.0,
    json_mode: bool = False,
) -> AnswerProvider:
    """Factory: create an AnswerProvider for one configured backend."""
    name = config.provider.strip().lower()
    if name == "gemini":
        from doubt_mentor.providers.gemini_provider import GeminiProvider
        return GeminiProvider(
            env.gemini_api_key,
            config.model,
            version=config.version,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout_seconds=timeout_seconds,
            json_mode=json_mode,
        )
    if name == "anthropic":
        from doubt_mentor.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(
            env.anthropic_api_key,
            config.model,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout_seconds=timeout_seconds,
        )
    if name == "openai":
        from doubt_mentor.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(
            env.openai_api_key,
            config.model,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout_seconds=timeout_seconds,
            json_mode=json_mode,
        )
    raise ValueError(f"Unknown provider: {config.provider!r}. Supported: 'gemini', 'anthropic', 'openai'")
