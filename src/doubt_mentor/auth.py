from __future__ import annotations

from typing import Protocol, runtime_checkable

import jwt
from loguru import logger

JWT_ALGORITHM = "HS256"


@runtime_checkable
class IdentityProvider(Protocol):
    def resolve(self, credential: str | None) -> str | None:
        """Return the stable user id for a credential, or None if it is not valid."""
        ...


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class JwtIdentityProvider:
    """Verifies HS256 access tokens and uses the `sub` claim as the user id."""

    def __init__(self, secret: str, *, audience: str | None = "authenticated"):
        self._secret = secret
        self._audience = audience

    def resolve(self, credential: str | None) -> str | None:
        if not credential:
            return None
        options = {"verify_aud": self._audience is not None, "require": ["sub", "exp"]}
        try:
            claims = jwt.decode(
                credential,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                audience=self._audience,
                options=options,
            )
        except jwt.PyJWTError as ex:
            logger.info(f"Rejected credential: {type(ex).__name__}")
            return None
        subject = claims.get("sub")
        return str(subject) if subject else None


class StaticTokenIdentityProvider:
    def __init__(self, tokens: dict[str, str]):
        self._tokens = dict(tokens)

    def resolve(self, credential: str | None) -> str | None:
        if not credential:
            return None
        return self._tokens.get(credential)
