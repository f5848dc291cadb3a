"""Settings management utilities for Prism guest workspace configuration.

Updates:
  v0.3.0 - 2026-09-21 - Add API host, port, and public base URL for invite links.
  v0.2.1 - 2026-09-14 - Accept rate limit policies as JSON strings from the environment.
  v0.2.0 - 2026-09-12 - Add Redis DSN and rate limit policy configuration.
  v0.1.0 - 2026-08-30 - Initial guest storage and retention settings.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

_DOTENV_FALLBACK_PATH = ".env"

DEFAULT_STORAGE_DIR = Path("data") / "guest"
DEFAULT_STORAGE_QUOTA_BYTES = 5 * 1024 * 1024
DEFAULT_APP_BASE_URL = "http://localhost:5173"

DEFAULT_RATE_LIMIT_POLICIES: dict[str, dict[str, int]] = {
    "enhance": {"max_requests": 20, "window_seconds": 60},
    "send-invite": {"max_requests": 10, "window_seconds": 60},
    "generate-invite-link": {"max_requests": 10, "window_seconds": 60},
}

_ENV_ALIASES: dict[str, list[str]] = {
    "storage_dir": ["STORAGE_DIR", "storage_dir"],
    "storage_quota_bytes": ["STORAGE_QUOTA_BYTES", "storage_quota_bytes"],
    "redis_dsn": ["REDIS_DSN", "redis_dsn", "KV_URL"],
    "rate_limit_policies": ["RATE_LIMIT_POLICIES", "rate_limit_policies"],
    "retention_prompts": ["RETENTION_PROMPTS", "retention_prompts"],
    "retention_outputs": ["RETENTION_OUTPUTS", "retention_outputs"],
    "retention_chat_messages": ["RETENTION_CHAT_MESSAGES", "retention_chat_messages"],
    "prompt_limit_threshold": ["PROMPT_LIMIT_THRESHOLD", "prompt_limit_threshold"],
    "app_base_url": ["APP_BASE_URL", "app_base_url"],
    "api_host": ["API_HOST", "api_host"],
    "api_port": ["API_PORT", "api_port"],
}
# Read without the PRISM_ prefix.
_UNPREFIXED_ENV_KEYS = frozenset({"KV_URL"})


def _read_dotenv_values() -> dict[str, str]:
    """Load ``.env`` entries into a mapping without mutating ``os.environ``."""
    env_file_override = os.getenv("PRISM_ENV_FILE")
    if env_file_override is not None:
        candidate = env_file_override.strip()
        if not candidate:
            return {}
        path = Path(candidate).expanduser()
    else:
        path = Path(_DOTENV_FALLBACK_PATH).expanduser()
    if not path.is_file():
        return {}
    raw_values = dotenv_values(str(path))
    return {str(key): str(value) for key, value in raw_values.items() if value is not None}


class SettingsError(Exception):
    """Raised when Prism configuration cannot be loaded or validated."""


class PrismSettings(BaseSettings):
    """Application configuration sourced from environment variables or JSON files."""

    storage_dir: Path = Field(
        default=DEFAULT_STORAGE_DIR,
        description="Directory holding the guest workspace storage file.",
    )
    storage_quota_bytes: int = Field(
        default=DEFAULT_STORAGE_QUOTA_BYTES,
        description="Maximum serialised size of the persistent guest storage scope.",
    )
    redis_dsn: str | None = Field(
        default=None,
        description="Redis connection URL for rate limit counters; unset disables limiting.",
    )
    rate_limit_policies: dict[str, dict[str, int]] = Field(
        default_factory=lambda: {
            key: dict(value) for key, value in DEFAULT_RATE_LIMIT_POLICIES.items()
        },
        description="Per-endpoint limits as {endpoint: {max_requests, window_seconds}}.",
    )
    retention_prompts: int = Field(default=10, description="Prompts kept when trimming.")
    retention_outputs: int = Field(default=20, description="Outputs kept when trimming.")
    retention_chat_messages: int = Field(
        default=50,
        description="Chat messages kept when trimming.",
    )
    prompt_limit_threshold: int = Field(
        default=3,
        description="Number of guest prompts after which creating another asks for signup.",
    )
    app_base_url: str = Field(
        default=DEFAULT_APP_BASE_URL,
        description="Public web app URL used to build invite links.",
    )
    api_host: str = Field(default="127.0.0.1", description="Bind address for the API server.")
    api_port: int = Field(default=8000, description="Port for the API server.")

    model_config = cast(
        "SettingsConfigDict",
        {
            "env_prefix": "PRISM_",
            "case_sensitive": False,
            "populate_by_name": True,
            "env": _ENV_ALIASES,
        },
    )

    @field_validator("storage_dir", mode="before")
    def _normalise_path(cls, value: Any) -> Path:
        """Expand user-relative paths and coerce values to Path instances."""
        if value is None:
            raise ValueError("a filesystem path is required")
        return Path(str(value)).expanduser().resolve()

    @field_validator(
        "storage_quota_bytes",
        "retention_prompts",
        "retention_outputs",
        "retention_chat_messages",
        "prompt_limit_threshold",
    )
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("api_port")
    def _validate_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("api_port must be between 1 and 65535")
        return value

    @field_validator("redis_dsn", mode="before")
    def _trim_redis_dsn(cls, value: str | None) -> str | None:
        """Normalise Redis DSN values by stripping whitespace and empty strings."""
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None

    @field_validator("app_base_url", mode="before")
    def _normalise_base_url(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            return DEFAULT_APP_BASE_URL
        if not text.startswith(("http://", "https://")):
            text = f"https://{text}"
        return text.rstrip("/")

    @field_validator("rate_limit_policies", mode="before")
    def _parse_rate_limit_policies(cls, value: object) -> dict[str, dict[str, int]]:
        """Merge overrides onto the default per-endpoint policies."""
        if value in (None, "", {}):
            return {key: dict(policy) for key, policy in DEFAULT_RATE_LIMIT_POLICIES.items()}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("rate_limit_policies must be a JSON object") from exc
        if not isinstance(value, Mapping):
            raise ValueError("rate_limit_policies must map endpoint names to policies")
        merged = {key: dict(policy) for key, policy in DEFAULT_RATE_LIMIT_POLICIES.items()}
        for raw_endpoint, raw_policy in cast("Mapping[object, object]", value).items():
            endpoint = str(raw_endpoint).strip()
            if not endpoint:
                raise ValueError("rate limit endpoint names must be non-empty")
            if not isinstance(raw_policy, Mapping):
                raise ValueError(f"rate limit policy for {endpoint!r} must be an object")
            policy = merged.setdefault(endpoint, {})
            for key in ("max_requests", "window_seconds"):
                if key in raw_policy:
                    policy[key] = int(raw_policy[key])
            if policy.get("max_requests", 0) < 1 or policy.get("window_seconds", 0) < 1:
                raise ValueError(
                    f"rate limit policy for {endpoint!r} needs positive max_requests "
                    "and window_seconds"
                )
        return merged

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        """Define configuration source precedence.

        Order (highest to lowest):
            1. Explicit keyword arguments (e.g. load_settings(redis_dsn="...")).
            2. JSON configuration file.
            3. Environment variables, ``.env`` values, and aliases.
            4. File secrets.
        """

        def env_with_aliases(_: BaseSettings | None = None) -> dict[str, Any]:
            data: dict[str, Any] = {}
            config_dict = cast("dict[str, Any]", cls.model_config)
            prefix = str(config_dict.get("env_prefix", ""))
            dotenv_values_map = _read_dotenv_values()

            def _lookup(candidate: str) -> str | None:
                value = os.getenv(candidate)
                if value is None:
                    value = dotenv_values_map.get(candidate)
                if value is None:
                    return None
                stripped_value = str(value).strip()
                return stripped_value or None

            for field, keys in _ENV_ALIASES.items():
                for key in keys:
                    candidates = [f"{prefix}{key}", f"{prefix}{key.upper()}"]
                    if key in _UNPREFIXED_ENV_KEYS:
                        candidates.append(key)
                    value = next(
                        (found for found in map(_lookup, candidates) if found is not None),
                        None,
                    )
                    if value is not None:
                        data[field] = value
                        break
            return data

        return (
            init_settings,
            cls._json_config_settings_source(settings_cls),
            cast("PydanticBaseSettingsSource", env_with_aliases),
            file_secret_settings,
        )

    @classmethod
    def _json_config_settings_source(
        cls,
        _: type[BaseSettings],
    ) -> PydanticBaseSettingsSource:
        """Return settings extracted from an optional JSON config file."""

        def _loader(_: BaseSettings | None = None) -> dict[str, Any]:
            explicit_path = os.getenv("PRISM_CONFIG_JSON")
            candidates: list[Path] = []
            if explicit_path:
                candidates.append(Path(explicit_path).expanduser())
            candidates.append((Path("config") / "config.json").expanduser())

            for path in candidates:
                if not path.exists():
                    if explicit_path and path == candidates[0]:
                        raise SettingsError(f"Configuration file not found: {path}")
                    continue
                try:
                    raw_contents = path.read_text(encoding="utf-8")
                except OSError as exc:  # pragma: no cover - filesystem failure is env-specific
                    raise SettingsError(f"Unable to read configuration file: {path}") from exc
                try:
                    data = json.loads(raw_contents)
                except json.JSONDecodeError as exc:
                    raise SettingsError(f"Invalid JSON in configuration file: {path}") from exc
                if not isinstance(data, dict):
                    raise SettingsError(f"Configuration file {path} must contain a JSON object")
                data_dict = {str(key): value for key, value in data.items()}
                unknown = sorted(set(data_dict) - set(cls.model_fields))
                if unknown:
                    logger.warning(
                        "Ignoring unknown key(s) %s in configuration file %s",
                        ", ".join(unknown),
                        path,
                    )
                return {key: value for key, value in data_dict.items() if key in cls.model_fields}
            return {}

        return cast("PydanticBaseSettingsSource", _loader)


def load_settings(**overrides: Any) -> PrismSettings:
    """Return validated settings, raising SettingsError on failure."""
    try:
        return PrismSettings(**overrides)
    except SettingsError:
        raise
    except ValidationError as exc:
        raise SettingsError("Invalid Prism configuration") from exc


logger = logging.getLogger("prism.settings")
