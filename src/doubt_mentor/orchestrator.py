from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Callable
from datetime import UTC, date, datetime

from loguru import logger

from doubt_mentor.auth import IdentityProvider
from doubt_mentor.errors import InvalidInputError, QuotaExceededError, TransientError, UnauthenticatedError
from doubt_mentor.memory import QuotaTracker, SessionManager
from doubt_mentor.models import (
    AskRequest,
    AskResponse,
    ChainResult,
    ConversationTurn,
    ResolutionResult,
    ResolveMode,
    ResourceDescriptor,
    Role,
)
from doubt_mentor.provider_chain import AnswerResolver
from doubt_mentor.resource_matcher import ResourceMatcher

GENERIC_RETRY_MESSAGE = (
    "I apologize, but I'm having trouble connecting right now. Please try asking with specific "
    "topic keywords like 'Thermodynamics' or 'Vectors'."
)


def _utc_today() -> date:
    return datetime.now(UTC).date()


def synthesize_fallback(resource: ResourceDescriptor | None) -> str:
    if resource is None:
        return GENERIC_RETRY_MESSAGE
    emoji = "🍎" if "physics" in resource.subject.lower() else "🧪"
    return (
        "I'm having a bit of trouble connecting to my brain right now, but I found the perfect "
        f"resource for you!\n\n{emoji} **{resource.title}** ({resource.subject}) covers exactly "
        "what you're asking about.\n\nCheck it out below! 👇"
    )


def synthesize(answer: ChainResult | None, resource: ResourceDescriptor | None) -> ResolutionResult:
    if answer is None:
        return ResolutionResult(
            answer_text=synthesize_fallback(resource),
            is_topic_switch=False,
            matched_resource=resource,
        )
    return ResolutionResult(
        answer_text=answer.text,
        is_topic_switch=answer.is_topic_switch,
        matched_resource=resource,
    )


class DoubtOrchestrator:
    def __init__(
        self,
        *,
        identity: IdentityProvider,
        quota: QuotaTracker,
        sessions: SessionManager,
        resolver: AnswerResolver,
        matcher: ResourceMatcher,
        today: Callable[[], date] = _utc_today,
    ):
        self._identity = identity
        self._quota = quota
        self._sessions = sessions
        self._resolver = resolver
        self._matcher = matcher
        self._today = today

    def authenticate(self, credential: str | None) -> str:
        user_id = self._identity.resolve(credential)
        if not user_id:
            raise UnauthenticatedError("Not authenticated")
        return user_id

    async def ask(self, credential: str | None, request: AskRequest) -> AskResponse:
        user_id = self.authenticate(credential)
        with logger.contextualize(user_id=user_id):
            return await self._ask(user_id, request)

    async def _ask(self, user_id: str, request: AskRequest) -> AskResponse:
        message = (request.message or "").strip()
        if not message:
            raise InvalidInputError("Message required")
        if request.session_id:
            await self._check_ownership(user_id, request.session_id)

        decision = await asyncio.to_thread(self._quota.check_and_increment, user_id, self._today())
        if not decision.allowed:
            raise QuotaExceededError(self._quota.daily_limit, decision.remaining)

        session_id = request.session_id or ""
        history = list(request.history)
        persisted = False
        try:
            session_id = await asyncio.to_thread(
                self._sessions.ensure_session, user_id, request.session_id, message
            )
            if request.session_id:
                history = await asyncio.to_thread(self._sessions.load_turns, session_id)
            await asyncio.to_thread(self._sessions.append_turn, session_id, Role.USER, message)
            persisted = True
        except sqlite3.Error as ex:
            # Past the quota check, storage failures degrade to an unsaved answer.
            logger.error(f"Degraded service: session storage failed: {ex}")

        with logger.contextualize(session_id=session_id):
            mode = ResolveMode.DIRECT if request.skip_context_check or not history else ResolveMode.STRICT
            answer, resource = await asyncio.gather(
                self._resolve_answer(message, history, mode),
                self._match_resource(message),
            )
            result = synthesize(answer, resource)

            if persisted:
                try:
                    await asyncio.to_thread(self._sessions.append_turn, session_id, Role.MENTOR, result.answer_text)
                except sqlite3.Error as ex:
                    logger.error(f"Failed to persist mentor turn: {ex}")

        return AskResponse(
            answer=result.answer_text,
            session_id=session_id,
            matched_resource=result.matched_resource,
            is_first_response=not history,
            is_topic_switch=result.is_topic_switch,
        )

    async def _check_ownership(self, user_id: str, session_id: str) -> None:
        try:
            owned = await asyncio.to_thread(self._sessions.owns, user_id, session_id)
        except sqlite3.Error as ex:
            logger.error(f"Session lookup failed: {ex}")
            raise TransientError("Conversation storage temporarily unavailable") from ex
        if not owned:
            raise InvalidInputError(f"Unknown session: {session_id}")

    async def _resolve_answer(
        self,
        message: str,
        history: list[ConversationTurn],
        mode: ResolveMode,
    ) -> ChainResult | None:
        try:
            return await self._resolver.resolve(message, history, mode)
        except Exception as ex:
            logger.error(f"Answer resolution crashed: {type(ex).__name__}: {ex}")
            return None

    async def _match_resource(self, message: str) -> ResourceDescriptor | None:
        try:
            return await self._matcher.match(message)
        except Exception as ex:
            logger.error(f"Resource matching crashed: {type(ex).__name__}: {ex}")
            return None
