from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class Role(str, Enum):
    USER = "user"
    MENTOR = "mentor"


class SessionStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ResolveMode(str, Enum):
    STRICT = "strict"
    DIRECT = "direct"


@dataclass(frozen=True)
class ProviderConfig:
    provider: str
    model: str
    version: str = "v1beta"

    @property
    def label(self) -> str:
        return f"{self.provider}:{self.model}"


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: str

    def to_provider_message(self) -> dict:
        role = "assistant" if self.role == Role.MENTOR else "user"
        return {"role": role, "content": self.content}


@dataclass(frozen=True)
class Session:
    id: str
    user_id: str
    title: str
    status: SessionStatus
    created_at: str
    updated_at: str
    turns: tuple[ConversationTurn, ...] = ()


@dataclass(frozen=True)
class QuotaRecord:
    user_id: str
    daily_count: int
    last_reset_date: date


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    remaining: int


@dataclass(frozen=True)
class ResourceDescriptor:
    id: str
    subject: str
    unit_title: str
    title: str
    keyword_tags: frozenset[str] = field(default_factory=frozenset)
    url: str = ""

    def to_suggestion(self) -> dict:
        return {
            "title": self.title,
            "subjectUnit": self.unit_title,
            "subject": self.subject,
            "url": self.url,
        }


@dataclass(frozen=True)
class ChainResult:
    text: str
    is_topic_switch: bool
    provider_label: str


@dataclass(frozen=True)
class ResolutionResult:
    answer_text: str
    is_topic_switch: bool
    matched_resource: ResourceDescriptor | None


@dataclass(frozen=True)
class AskRequest:
    message: str
    session_id: str | None = None
    history: tuple[ConversationTurn, ...] = ()
    skip_context_check: bool = False


@dataclass(frozen=True)
class AskResponse:
    answer: str
    session_id: str
    matched_resource: ResourceDescriptor | None
    is_first_response: bool
    is_topic_switch: bool

    def to_dict(self) -> dict:
        payload: dict = {
            "answer": self.answer,
            "sessionId": self.session_id,
            "isFirstResponse": self.is_first_response,
            "isTopicSwitch": self.is_topic_switch,
        }
        if self.matched_resource is not None:
            payload["matchedResource"] = self.matched_resource.to_suggestion()
        return payload
