from __future__ import annotations

import asyncio
from typing import Literal

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from doubt_mentor.auth import bearer_token
from doubt_mentor.errors import DoubtMentorError, InvalidInputError
from doubt_mentor.memory import SessionManager
from doubt_mentor.models import AskRequest, ConversationTurn, Role, Session
from doubt_mentor.orchestrator import DoubtOrchestrator


class TurnPayload(BaseModel):
    role: Literal["user", "mentor"]
    content: str = ""


class AskPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")
    history: list[TurnPayload] = Field(default_factory=list)
    skip_context_check: bool = Field(default=False, alias="skipContextCheck")

    def to_request(self) -> AskRequest:
        return AskRequest(
            message=self.message or "",
            session_id=self.session_id or None,
            history=tuple(ConversationTurn(role=Role(t.role), content=t.content) for t in self.history),
            skip_context_check=self.skip_context_check,
        )


def _session_summary(session: Session) -> dict:
    return {
        "id": session.id,
        "title": session.title,
        "status": session.status.value,
        "createdAt": session.created_at,
        "updatedAt": session.updated_at,
    }


def create_app(orchestrator: DoubtOrchestrator, sessions: SessionManager) -> FastAPI:
    app = FastAPI(title="doubt-mentor")

    @app.exception_handler(DoubtMentorError)
    async def _handle_doubt_error(request: Request, exc: DoubtMentorError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.post("/doubts/ask")
    async def ask(payload: AskPayload, authorization: str | None = Header(default=None)) -> dict:
        response = await orchestrator.ask(bearer_token(authorization), payload.to_request())
        return response.to_dict()

    @app.get("/doubts/sessions")
    async def list_sessions(limit: int = 50, authorization: str | None = Header(default=None)) -> dict:
        user_id = orchestrator.authenticate(bearer_token(authorization))
        found = await asyncio.to_thread(sessions.list_sessions, user_id, limit=limit)
        return {"sessions": [_session_summary(s) for s in found]}

    @app.get("/doubts/sessions/{session_id}")
    async def get_session(session_id: str, authorization: str | None = Header(default=None)) -> dict:
        user_id = orchestrator.authenticate(bearer_token(authorization))
        session = await asyncio.to_thread(sessions.get_session, session_id)
        if session is None or session.user_id != user_id:
            raise InvalidInputError(f"Unknown session: {session_id}")
        payload = _session_summary(session)
        payload["turns"] = [{"role": t.role.value, "content": t.content} for t in session.turns]
        return payload

    return app
