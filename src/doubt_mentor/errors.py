"""Error taxonomy for the doubt-resolution core.

Only the rejection errors (unauthenticated, invalid input, quota exceeded,
transient quota storage failure) ever reach a caller. Upstream and provider
errors are internal signals that the orchestrator turns into a fallback answer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "Unauthenticated"
    INVALID_INPUT = "InvalidInput"
    QUOTA_EXCEEDED = "QuotaExceeded"
    TRANSIENT = "Transient"
    UPSTREAM_EXHAUSTED = "UpstreamExhausted"


class DoubtMentorError(Exception):
    kind: ErrorKind = ErrorKind.TRANSIENT
    status_code: int = 500

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> dict:
        payload = {"errorKind": self.kind.value, "message": self.message}
        payload.update(self.extra)
        return payload


class UnauthenticatedError(DoubtMentorError):
    kind = ErrorKind.UNAUTHENTICATED
    status_code = 401


class InvalidInputError(DoubtMentorError):
    kind = ErrorKind.INVALID_INPUT
    status_code = 400


class QuotaExceededError(DoubtMentorError):
    kind = ErrorKind.QUOTA_EXCEEDED
    status_code = 429

    def __init__(self, limit: int, remaining: int = 0):
        super().__init__(f"Daily limit ({limit}) reached", limit=limit, remaining=remaining)
        self.limit = limit
        self.remaining = remaining


class TransientError(DoubtMentorError):
    kind = ErrorKind.TRANSIENT
    status_code = 503


class UpstreamExhaustedError(DoubtMentorError):
    kind = ErrorKind.UPSTREAM_EXHAUSTED
    status_code = 502

    def __init__(self, chain_name: str, attempts: int):
        super().__init__(f"All {attempts} providers in the {chain_name} chain failed")
        self.chain_name = chain_name
        self.attempts = attempts


class ProviderError(Exception):
    """A single provider attempt failed (transport, status, or empty payload)."""

    def __init__(self, provider: str, reason: str, *, status_code: int | None = None):
        self.provider = provider
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{provider}: {reason}")
