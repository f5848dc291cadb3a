"""HTTP request handlers for Prism.

Updates: v0.1.0 - 2026-09-21 - Expose the FastAPI application factory.
"""

from .app import (
    EnhancementRequest,
    EnhancementResult,
    InviteLinkRequest,
    PromptEnhancer,
    create_app,
)
from .auth import AuthenticatedUser, StaticTokenVerifier, TokenVerifier, extract_bearer_token

__all__ = [
    "AuthenticatedUser",
    "EnhancementRequest",
    "EnhancementResult",
    "InviteLinkRequest",
    "PromptEnhancer",
    "StaticTokenVerifier",
    "TokenVerifier",
    "create_app",
    "extract_bearer_token",
]
