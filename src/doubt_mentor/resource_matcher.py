from __future__ import annotations

import asyncio
import json
import re

from loguru import logger

from doubt_mentor.catalog import ResourceCatalog
from doubt_mentor.errors import UpstreamExhaustedError
from doubt_mentor.keyword_search import find_best_resource
from doubt_mentor.models import ResourceDescriptor
from doubt_mentor.provider_chain import ProviderChain
from doubt_mentor.system_prompt import build_resource_selection_prompt

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def parse_selection_index(raw_text: str) -> int | None:
    """Parse `{"index": N}` (or a bare integer) out of a provider reply."""
    cleaned = _CODE_FENCE.sub("", raw_text or "").strip()
    if not cleaned:
        return None
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return None
    if isinstance(parsed, dict):
        parsed = parsed.get("index")
    if isinstance(parsed, bool) or not isinstance(parsed, (int, float)):
        return None
    if isinstance(parsed, float) and not parsed.is_integer():
        return None
    return int(parsed)


class ResourceMatcher:
    def __init__(self, catalog: ResourceCatalog, chain: ProviderChain):
        self._catalog = catalog
        self._chain = chain
        self._listing = catalog.describe_for_prompt()

    async def match(self, question: str) -> ResourceDescriptor | None:
        """Pick one resource for the question.

        The AI-ranked selection and the keyword search run side by side; an AI
        pick wins outright, otherwise the keyword result is used.
        """
        if len(self._catalog) == 0:
            return None

        ai_task = asyncio.create_task(self.select_with_ai(question))
        keyword_pick = self.select_by_keywords(question)

        try:
            ai_pick = await ai_task
        except Exception as ex:
            logger.error(f"AI resource selection crashed: {type(ex).__name__}: {ex}")
            ai_pick = None

        if ai_pick is not None:
            logger.info(f"AI selected resource: {ai_pick.title}")
            return ai_pick
        if keyword_pick is not None:
            logger.info(f"AI found no resource, keyword search selected: {keyword_pick.title}")
        else:
            logger.info("No resource matched the question")
        return keyword_pick

    def select_by_keywords(self, question: str) -> ResourceDescriptor | None:
        return find_best_resource(question, self._catalog)

    async def select_with_ai(self, question: str) -> ResourceDescriptor | None:
        prompt = build_resource_selection_prompt(question, self._listing)
        try:
            descriptor, _ = await self._chain.first_success("", [], prompt, self._accept_selection)
        except UpstreamExhaustedError:
            logger.info("All AI resource selectors failed, falling back to keyword search")
            return None
        return descriptor

    def _accept_selection(self, raw_text: str) -> ResourceDescriptor | None:
        index = parse_selection_index(raw_text)
        if index is None:
            return None
        return self._catalog.get(index)
