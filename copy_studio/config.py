"""Configuration helpers for the Copy Studio backend."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Tuple

from dotenv import dotenv_values, load_dotenv

ENV_PREFIX = "COPY_STUDIO_"
DEFAULT_FALLBACK_ENV_FILE = ".env.local"
DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)
CREDENTIAL_VARIABLES = ("OPENAI_API_KEY", "ANTHROPIC_API_KEY")

load_dotenv(override=False)


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, constructed once at startup.

    OpenAI is considered the primary provider; if its key is missing the
    configuration falls back to Anthropic. Business logic never reads the
    environment itself; it receives this object (or values taken from it).
    """

    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-sonnet-4-20250514"
    # Ceiling for a single provider call, enforced by the SDK client.
    call_timeout_seconds: float = 180.0
    data_dir: Path = Path("training-data")
    brand_name: str = "Jones Road Beauty"
    allowed_origins: Tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    log_level: str = "INFO"
    json_logs: bool = True
    credential_sources: Dict[str, str] = field(default_factory=dict)

    @property
    def primary_provider(self) -> str | None:
        """Return the preferred provider based on available credentials."""

        if self.openai_api_key:
            return "openai"
        if self.anthropic_api_key:
            return "anthropic"
        return None

    def get_api_key(self, provider: str | None = None) -> str | None:
        """Return the API key for the requested provider.

        When *provider* is omitted the primary provider's key is returned.
        """

        resolved_provider = provider or self.primary_provider
        if resolved_provider == "openai":
            return self.openai_api_key
        if resolved_provider == "anthropic":
            return self.anthropic_api_key
        return None

    @property
    def has_any_keys(self) -> bool:
        """True when at least one provider API key is configured."""

        return self.primary_provider is not None

    def model_for(self, provider: str) -> str:
        return self.openai_model if provider == "openai" else self.anthropic_model


def _read_fallback_credentials(env_file: Path) -> Dict[str, str]:
    """Read provider keys from the documented fallback file, if present."""

    if not env_file.is_file():
        return {}
    values = dotenv_values(env_file)
    return {
        name: value.strip()
        for name, value in values.items()
        if name in CREDENTIAL_VARIABLES and value and value.strip()
    }


def _resolve_credentials(environ: Mapping[str, str], env_file: Path) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Return (credentials, sources) preferring the environment over the file."""

    fallback = _read_fallback_credentials(env_file)
    credentials: Dict[str, str] = {}
    sources: Dict[str, str] = {}
    for name in CREDENTIAL_VARIABLES:
        if environ.get(name):
            credentials[name] = environ[name]
            sources[name] = "environment"
        elif name in fallback:
            credentials[name] = fallback[name]
            sources[name] = str(env_file)
    return credentials, sources


def _split_origins(raw: str | None) -> Tuple[str, ...]:
    if not raw:
        return DEFAULT_ALLOWED_ORIGINS
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def _as_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(environ: Mapping[str, str]) -> Settings:
    """Build settings from an environment mapping."""

    env_file = Path(environ.get(f"{ENV_PREFIX}ENV_FILE", DEFAULT_FALLBACK_ENV_FILE))
    credentials, sources = _resolve_credentials(environ, env_file)
    return Settings(
        openai_api_key=credentials.get("OPENAI_API_KEY"),
        anthropic_api_key=credentials.get("ANTHROPIC_API_KEY"),
        openai_model=environ.get(f"{ENV_PREFIX}OPENAI_MODEL", Settings.openai_model),
        anthropic_model=environ.get(f"{ENV_PREFIX}ANTHROPIC_MODEL", Settings.anthropic_model),
        call_timeout_seconds=float(environ.get(f"{ENV_PREFIX}CALL_TIMEOUT", Settings.call_timeout_seconds)),
        data_dir=Path(environ.get(f"{ENV_PREFIX}DATA_DIR", str(Settings.data_dir))),
        brand_name=environ.get(f"{ENV_PREFIX}BRAND_NAME", Settings.brand_name),
        allowed_origins=_split_origins(environ.get(f"{ENV_PREFIX}ALLOWED_ORIGINS")),
        log_level=environ.get(f"{ENV_PREFIX}LOG_LEVEL", Settings.log_level).upper(),
        json_logs=_as_bool(environ.get(f"{ENV_PREFIX}JSON_LOGS"), Settings.json_logs),
        credential_sources=sources,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read environment variables and return cached settings."""

    return load_settings(os.environ)
