"""Settings resolved from the environment with sane defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass

from . import constants


def _get_env_str(env_name: str, default: str) -> str:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    return raw


def _parse_env_int(env_name: str, default: int) -> int:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_env_float(env_name: str, default: float) -> float:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _read_file_trimmed(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read().strip()
    except OSError as exc:
        raise ValueError(f"unable to read secret file {path!r}: {exc}") from exc


def _resolve_secret(env_name: str) -> str:
    """Prefer ``<env_name>_FILE`` contents, falling back to ``<env_name>``."""

    env_secret = os.getenv(env_name, "").strip()
    file_path = (os.getenv(f"{env_name}_FILE") or "").strip()
    if not file_path:
        return env_secret
    try:
        secret = _read_file_trimmed(file_path)
    except ValueError:
        return env_secret
    return secret or env_secret


@dataclass(frozen=True)
class Settings:
    corporation_id: int
    alliance_id: int
    check_interval: float
    notify_interval: float
    repository_file: str
    discord_channel_id: str
    discord_auth_token: str
    discord_api_base_url: str
    esi_base_url: str
    sso_base_url: str
    user_agent: str
    request_timeout: float
    rate_limit_max_retries: int
    rate_limit_backoff_base: float
    rate_limit_backoff_max: float
    rate_limit_jitter: float
    eve_client_id: str
    eve_sso_secret: str
    eve_refresh_token: str
    api_port: int

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            corporation_id=_parse_env_int("QM_CORPORATION_ID", 0),
            alliance_id=_parse_env_int("QM_ALLIANCE_ID", 0),
            check_interval=_parse_env_float(
                "QM_CHECK_INTERVAL", constants.DEFAULT_CHECK_INTERVAL
            ),
            notify_interval=_parse_env_float(
                "QM_NOTIFY_INTERVAL", constants.DEFAULT_NOTIFY_INTERVAL
            ),
            repository_file=_get_env_str(
                "QM_REPOSITORY_FILE", constants.DEFAULT_REPOSITORY_FILE
            ),
            discord_channel_id=_get_env_str("QM_DISCORD_CHANNEL_ID", ""),
            discord_auth_token=_resolve_secret("QM_DISCORD_AUTH_TOKEN"),
            discord_api_base_url=_get_env_str(
                "QM_DISCORD_API_BASE_URL", constants.DEFAULT_DISCORD_API_BASE_URL
            ),
            esi_base_url=_get_env_str("QM_ESI_BASE_URL", constants.DEFAULT_ESI_BASE_URL),
            sso_base_url=_get_env_str("QM_SSO_BASE_URL", constants.DEFAULT_SSO_BASE_URL),
            user_agent=_get_env_str("QM_USER_AGENT", constants.DEFAULT_USER_AGENT),
            request_timeout=_parse_env_float(
                "QM_REQUEST_TIMEOUT", constants.DEFAULT_REQUEST_TIMEOUT
            ),
            rate_limit_max_retries=_parse_env_int(
                "QM_RATE_LIMIT_MAX_RETRIES",
                constants.DEFAULT_RATE_LIMIT_MAX_RETRIES,
            ),
            rate_limit_backoff_base=_parse_env_float(
                "QM_RATE_LIMIT_BACKOFF_BASE",
                constants.DEFAULT_RATE_LIMIT_BACKOFF_BASE,
            ),
            rate_limit_backoff_max=_parse_env_float(
                "QM_RATE_LIMIT_BACKOFF_MAX",
                constants.DEFAULT_RATE_LIMIT_BACKOFF_MAX,
            ),
            rate_limit_jitter=_parse_env_float(
                "QM_RATE_LIMIT_JITTER",
                constants.DEFAULT_RATE_LIMIT_JITTER,
            ),
            eve_client_id=_get_env_str("QM_EVE_CLIENT_ID", ""),
            eve_sso_secret=_resolve_secret("QM_EVE_SSO_SECRET"),
            eve_refresh_token=_resolve_secret("QM_EVE_REFRESH_TOKEN"),
            api_port=_parse_env_int("QM_API_PORT", constants.DEFAULT_API_PORT),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


__all__ = ["Settings", "get_settings"]
