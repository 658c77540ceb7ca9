from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    vercel_api_url: str = "https://api.vercel.com"
    vercel_api_token: str | None = None
    vercel_project_id: str | None = None
    vercel_team_id: str | None = None
    platform_domains: tuple[str, ...] = ("linkhub.sh",)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def domain_provider_configured(self) -> bool:
        return bool(self.vercel_api_token and self.vercel_project_id)


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw not in _TRUTHY + _FALSY:
        raise ValueError(f"LOG_JSON must be a boolean (got {log_json_raw!r})")

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    vercel_api_url = _getenv("VERCEL_API_URL", "https://api.vercel.com").rstrip("/")
    if not vercel_api_url.startswith(("https://", "http://")):
        raise ValueError(
            f"VERCEL_API_URL must be an http(s) URL (got {vercel_api_url!r})"
        )

    platform_domains = tuple(
        d.strip().lower()
        for d in _getenv("PLATFORM_DOMAINS", "linkhub.sh").split(",")
        if d.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in _TRUTHY,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        vercel_api_url=vercel_api_url,
        vercel_api_token=_getenv("VERCEL_API_TOKEN", "") or None,
        vercel_project_id=_getenv("VERCEL_PROJECT_ID", "") or None,
        vercel_team_id=_getenv("VERCEL_TEAM_ID", "") or None,
        platform_domains=platform_domains,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
