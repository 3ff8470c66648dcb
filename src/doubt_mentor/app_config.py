from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from doubt_mentor.models import ProviderConfig

_DEFAULT_ANSWER_PROVIDERS = [
    {"Provider": "gemini", "Model": "gemini-2.0-flash", "Version": "v1beta"},
    {"Provider": "gemini", "Model": "gemini-2.0-flash-lite", "Version": "v1beta"},
    {"Provider": "gemini", "Model": "gemini-2.5-flash", "Version": "v1beta"},
    {"Provider": "gemini", "Model": "gemini-2.5-pro", "Version": "v1beta"},
]

_DEFAULT_MATCHER_PROVIDERS = [
    {"Provider": "gemini", "Model": "gemini-2.0-flash-lite", "Version": "v1beta"},
    {"Provider": "gemini", "Model": "gemini-2.5-flash-lite", "Version": "v1beta"},
    {"Provider": "gemini", "Model": "gemini-2.0-flash", "Version": "v1beta"},
]


@dataclass
class RuntimeEnv:
    gemini_api_key: str
    anthropic_api_key: str
    openai_api_key: str
    jwt_secret: str | None
    api_tokens: dict[str, str]


@dataclass
class AppConfig:
    daily_limit: int
    db_path: str
    catalog_path: str
    answer_providers: list[ProviderConfig]
    matcher_providers: list[ProviderConfig]
    max_tokens: int
    temperature: float
    provider_timeout_seconds: float
    session_title_chars: int
    host: str
    port: int
    jwt_audience: str | None
    log_level: str
    log_consumers: list | None


def load_json_config(path: Path | None = None) -> dict:
    config_path = path or Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def _parse_provider_list(raw: object, default: list[dict]) -> list[ProviderConfig]:
    entries = raw if isinstance(raw, list) and raw else default
    providers: list[ProviderConfig] = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("Model"):
            raise ValueError(f"Invalid provider entry: {entry!r}")
        providers.append(
            ProviderConfig(
                provider=str(entry.get("Provider", "gemini")).strip().lower(),
                model=str(entry["Model"]).strip(),
                version=str(entry.get("Version", "v1beta")).strip(),
            )
        )
    return providers


def parse_app_config(config: dict) -> AppConfig:
    audience = config.get("JwtAudience", "authenticated")
    if not _to_bool(config.get("VerifyJwtAudience", True), default=True):
        audience = None
    return AppConfig(
        daily_limit=int(config.get("DailyLimit", 50)),
        db_path=str(config.get("DbPath", ".doubt_mentor/doubts.db")),
        catalog_path=str(config.get("CatalogPath", "catalog.json")),
        answer_providers=_parse_provider_list(config.get("AnswerProviders"), _DEFAULT_ANSWER_PROVIDERS),
        matcher_providers=_parse_provider_list(config.get("MatcherProviders"), _DEFAULT_MATCHER_PROVIDERS),
        max_tokens=int(config.get("MaxTokens", 1024)),
        temperature=float(config.get("Temperature", 0.7)),
        provider_timeout_seconds=float(config.get("ProviderTimeoutSeconds", 30)),
        session_title_chars=int(config.get("SessionTitleChars", 50)),
        host=str(config.get("Host", "127.0.0.1")),
        port=int(config.get("Port", 8000)),
        jwt_audience=audience,
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def _parse_api_tokens(raw: str | None) -> dict[str, str]:
    # DOUBT_MENTOR_API_TOKENS="token1=user1,token2=user2"
    tokens: dict[str, str] = {}
    for pair in (raw or "").split(","):
        token, sep, user_id = pair.partition("=")
        if sep and token.strip() and user_id.strip():
            tokens[token.strip()] = user_id.strip()
    return tokens


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        gemini_api_key=os.environ.get("GEMINI_API_KEY", ""),
        anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
        jwt_secret=os.environ.get("DOUBT_MENTOR_JWT_SECRET") or None,
        api_tokens=_parse_api_tokens(os.environ.get("DOUBT_MENTOR_API_TOKENS")),
    )
