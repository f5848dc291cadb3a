"""Bearer token authentication for API handlers.

Token verification is delegated to an injected :class:`TokenVerifier` (the
identity provider boundary); handlers only see an :class:`AuthenticatedUser`.

Updates:
  v0.1.0 - 2026-09-21 - Initial bearer token dependency.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request

from core.exceptions import AuthenticationError

from .responses import ApiError, unauthorized

logger = logging.getLogger("prism.api.auth")

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Identity decoded from a verified token."""

    uid: str
    email: str | None = None
    name: str | None = None


class TokenVerifier(Protocol):
    """Boundary to the identity provider's token verification."""

    async def verify(self, token: str) -> AuthenticatedUser:
        """Return the token's user or raise AuthenticationError."""
        ...


class StaticTokenVerifier:
    """Verifier backed by a fixed token table, for local runs and tests."""

    def __init__(self, tokens: Mapping[str, AuthenticatedUser]) -> None:
        self._tokens = dict(tokens)

    async def verify(self, token: str) -> AuthenticatedUser:
        try:
            return self._tokens[token]
        except KeyError as exc:
            raise AuthenticationError("invalid or expired token") from exc


def extract_bearer_token(header: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer`` header value."""
    if not header or not header.startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX):].strip()
    return token or None


async def require_user(request: Request) -> AuthenticatedUser:
    """FastAPI dependency resolving the caller or raising a 401 envelope."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        raise unauthorized("Unauthenticated: missing Bearer token")
    verifier: TokenVerifier = request.app.state.token_verifier
    try:
        return await verifier.verify(token)
    except AuthenticationError as exc:
        logger.info("Token verification failed: %s", exc)
        raise unauthorized("Unauthenticated: invalid or expired token") from exc
    except Exception as exc:  # noqa: BLE001 - external identity provider failure
        logger.error("Token verifier raised unexpectedly: %s", exc)
        raise ApiError(401, "UNAUTHORIZED", "Unauthenticated: token could not be verified") from exc


__all__ = [
    "AuthenticatedUser",
    "StaticTokenVerifier",
    "TokenVerifier",
    "extract_bearer_token",
    "require_user",
]
