"""Ordered provider chains with automatic fallback.

A chain tries each provider once, in configured order, and moves on at the
first transport error, non-success status, empty payload or payload the caller
rejects. The order encodes cost and availability policy and lives in config.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from loguru import logger

from doubt_mentor.errors import ProviderError, UpstreamExhaustedError
from doubt_mentor.models import ChainResult, ConversationTurn, ResolveMode
from doubt_mentor.provider import AnswerProvider
from doubt_mentor.system_prompt import (
    TOPIC_SWITCH_NOTICE,
    TOPIC_SWITCH_SENTINEL,
    build_direct_prompt,
    build_strict_prompt,
)

T = TypeVar("T")


class ProviderChain:
    def __init__(self, name: str, providers: Sequence[AnswerProvider]):
        self._name = name
        self._providers = tuple(providers)

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._providers)

    async def first_success(
        self,
        system_prompt: str,
        history: list[dict],
        question: str,
        accept: Callable[[str], T | None],
    ) -> tuple[T, str]:
        """Return the first accepted payload and the name of the provider that produced it.

        `accept` converts raw text into a usable value, or returns None to
        reject it (the chain then moves to the next provider).
        Raises UpstreamExhaustedError when no provider yields an accepted payload.
        """
        for provider in self._providers:
            logger.debug(f"[{self._name}] Trying {provider.name}...")
            try:
                text = await provider.generate(system_prompt, history, question)
            except ProviderError as ex:
                logger.warning(f"[{self._name}] {provider.name} failed: {ex.reason}")
                continue
            except Exception as ex:
                logger.error(f"[{self._name}] {provider.name} raised unexpectedly: {type(ex).__name__}: {ex}")
                continue

            value = accept(text)
            if value is None:
                logger.warning(f"[{self._name}] {provider.name} returned an unusable payload")
                continue

            logger.info(f"[{self._name}] Success with {provider.name}")
            return value, provider.name

        raise UpstreamExhaustedError(self._name, len(self._providers))


def _non_empty(text: str) -> str | None:
    stripped = text.strip() if text else ""
    return stripped or None


class AnswerResolver:
    """Obtains a mentor answer, optionally fused with a topic-continuity check."""

    def __init__(self, chain: ProviderChain):
        self._chain = chain

    async def resolve(
        self,
        prompt: str,
        history: Sequence[ConversationTurn],
        mode: ResolveMode,
    ) -> ChainResult | None:
        """Return the answer, or None when every provider in the chain failed."""
        system_prompt = build_strict_prompt() if mode == ResolveMode.STRICT else build_direct_prompt()
        provider_history = [turn.to_provider_message() for turn in history]

        try:
            raw_text, provider_name = await self._chain.first_success(
                system_prompt,
                provider_history,
                prompt,
                _non_empty,
            )
        except UpstreamExhaustedError as ex:
            logger.warning(f"Degraded service: {ex.message}")
            return None

        if TOPIC_SWITCH_SENTINEL in raw_text:
            logger.info(f"Topic switch detected by {provider_name}")
            return ChainResult(text=TOPIC_SWITCH_NOTICE, is_topic_switch=True, provider_label=provider_name)
        return ChainResult(text=raw_text, is_topic_switch=False, provider_label=provider_name)
