"""FastAPI application exposing the rate-limited request handlers.

Handlers authenticate the caller, count the request against the endpoint's
rate limit policy, and answer with the uniform envelopes from
:mod:`api.responses`. Rate limit headers are attached to every counted
response; blocked requests get ``429`` plus ``Retry-After``.

Updates:
  v0.2.1 - 2026-10-18 - Require the inviting user id on invite link requests.
  v0.2.0 - 2026-09-23 - Map request validation failures to BAD_REQUEST envelopes.
  v0.1.0 - 2026-09-21 - Initial enhance-prompt and generate-invite-link handlers.
"""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Literal, Protocol

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from starlette.concurrency import run_in_threadpool

from core.exceptions import EnhancementUnavailableError
from core.rate_limit import RateLimitDecision, check_rate_limit

from .auth import AuthenticatedUser, TokenVerifier, require_user
from .responses import ApiError, error_response, ok

if TYPE_CHECKING:  # pragma: no cover - typing only
    from core.factory import GuestServices

logger = logging.getLogger("prism.api")

INVITE_TOKEN_LENGTH = 32
_INVITE_TOKEN_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


class EnhancementRequest(BaseModel):
    """Body of ``POST /api/enhance-prompt``."""

    prompt: str
    enhancement_type: str = "general"
    target_model: str = "general"
    context: dict[str, Any] = Field(default_factory=dict)

    @field_validator("prompt")
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Prompt text is required and must be a non-empty string")
        return value


class InviteLinkRequest(BaseModel):
    """Body of ``POST /api/generate-invite-link``."""

    team_id: str = Field(min_length=1)
    team_name: str = Field(min_length=1)
    role: Literal["member", "admin"]
    invited_by: str = Field(min_length=1)
    inviter_name: str | None = None
    expires_in_days: int = Field(default=7, ge=1, le=30)


@dataclass(slots=True)
class EnhancementResult:
    """Output of a prompt enhancer."""

    enhanced: str
    improvements: list[str] = field(default_factory=list)
    provider: str | None = None
    model: str | None = None


class PromptEnhancer(Protocol):
    """Boundary to the AI enhancement backend."""

    async def enhance(self, request: EnhancementRequest) -> EnhancementResult:
        """Return an enhanced version of ``request.prompt``."""
        ...


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:]) or "body"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or "Invalid request body."


def generate_invite_token() -> str:
    return "".join(secrets.choice(_INVITE_TOKEN_ALPHABET) for _ in range(INVITE_TOKEN_LENGTH))


async def _enforce_rate_limit(
    services: GuestServices,
    user: AuthenticatedUser,
    endpoint: str,
) -> RateLimitDecision:
    policy = services.policy_for(endpoint)
    decision = await run_in_threadpool(
        check_rate_limit,
        services.rate_limiter,
        user.uid,
        endpoint,
        policy,
    )
    if not decision.allowed:
        raise ApiError(
            429,
            decision.error_code or "RATE_LIMITED",
            decision.message or "Too many requests.",
            headers=decision.headers,
        )
    return decision


def create_app(
    services: GuestServices,
    *,
    token_verifier: TokenVerifier,
    enhancer: PromptEnhancer | None = None,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> FastAPI:
    """Return the API application bound to *services*."""
    app = FastAPI(title="prism", version="0.3.0")
    app.state.services = services
    app.state.token_verifier = token_verifier
    app.state.enhancer = enhancer
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    @app.exception_handler(ApiError)
    async def _api_error_handler(_: Request, exc: ApiError) -> JSONResponse:
        return error_response(exc.status_code, exc.code, exc.message, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, "BAD_REQUEST", _describe_validation_errors(exc))

    @app.post("/api/enhance-prompt")
    async def enhance_prompt(
        body: EnhancementRequest,
        user: AuthenticatedUser = Depends(require_user),
    ) -> JSONResponse:
        decision = await _enforce_rate_limit(services, user, "enhance")
        current_enhancer: PromptEnhancer | None = app.state.enhancer
        if current_enhancer is None:
            return error_response(
                503,
                "ENHANCEMENT_UNAVAILABLE",
                "Prompt enhancement is not configured.",
                headers=decision.headers,
            )
        try:
            result = await current_enhancer.enhance(body)
        except EnhancementUnavailableError as exc:
            return error_response(
                503,
                "ENHANCEMENT_UNAVAILABLE",
                str(exc),
                headers=decision.headers,
            )
        except Exception:  # noqa: BLE001 - external dependency failure
            logger.exception("Prompt enhancement failed for %s", user.uid)
            return error_response(
                500,
                "INTERNAL_ERROR",
                "Failed to enhance prompt.",
                headers=decision.headers,
            )

        return ok(
            {
                "original": body.prompt,
                "enhanced": result.enhanced,
                "improvements": list(result.improvements),
                "provider": result.provider,
                "model": result.model,
                "target_model": body.target_model,
                "metadata": {
                    "enhancement_type": body.enhancement_type,
                    "target_model": body.target_model,
                    "timestamp": clock().isoformat(),
                    "original_length": len(body.prompt),
                    "enhanced_length": len(result.enhanced),
                    "improvement_count": len(result.improvements),
                },
            },
            headers=decision.headers,
        )

    @app.post("/api/generate-invite-link")
    async def generate_invite_link(
        body: InviteLinkRequest,
        user: AuthenticatedUser = Depends(require_user),
    ) -> JSONResponse:
        decision = await _enforce_rate_limit(services, user, "generate-invite-link")
        token = generate_invite_token()
        expires_at = clock() + timedelta(days=body.expires_in_days)
        invite_link = f"{services.settings.app_base_url}/join?token={token}"
        logger.info(
            "Generated invite link for team %s invited by %s (token %s...)",
            body.team_id,
            body.invited_by,
            token[:8],
        )
        return ok(
            {
                "token": token,
                "invite_link": invite_link,
                "expires_at": expires_at.isoformat(),
                "message": "Invite link generated successfully",
            },
            headers=decision.headers,
        )

    return app


__all__ = [
    "EnhancementRequest",
    "EnhancementResult",
    "INVITE_TOKEN_LENGTH",
    "InviteLinkRequest",
    "PromptEnhancer",
    "create_app",
    "generate_invite_token",
]
