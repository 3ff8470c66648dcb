from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from doubt_mentor.app_config import AppConfig, RuntimeEnv
from doubt_mentor.auth import IdentityProvider, JwtIdentityProvider, StaticTokenIdentityProvider
from doubt_mentor.catalog import ResourceCatalog
from doubt_mentor.logging_config import setup_logging
from doubt_mentor.memory import MemoryStore, QuotaTracker, SessionManager
from doubt_mentor.orchestrator import DoubtOrchestrator
from doubt_mentor.provider import create_provider
from doubt_mentor.provider_chain import AnswerResolver, ProviderChain
from doubt_mentor.resource_matcher import ResourceMatcher


@dataclass
class AppRuntime:
    orchestrator: DoubtOrchestrator
    sessions: SessionManager
    memory_store: MemoryStore
    catalog: ResourceCatalog
    log_descriptions: list[str]

    def close(self) -> None:
        self.memory_store.close()


def _resolve_path(raw: str) -> Path:
    path = Path(raw)
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def build_identity_provider(app: AppConfig, env: RuntimeEnv) -> IdentityProvider:
    if env.jwt_secret:
        return JwtIdentityProvider(env.jwt_secret, audience=app.jwt_audience)
    if not env.api_tokens:
        logger.warning("No DOUBT_MENTOR_JWT_SECRET or DOUBT_MENTOR_API_TOKENS set; every request will be rejected")
    return StaticTokenIdentityProvider(env.api_tokens)


def build_chain(name: str, app: AppConfig, env: RuntimeEnv, *, json_mode: bool) -> ProviderChain:
    providers = [
        create_provider(
            config,
            env,
            max_tokens=app.max_tokens,
            temperature=app.temperature,
            timeout_seconds=app.provider_timeout_seconds,
            json_mode=json_mode,
        )
        for config in (app.matcher_providers if json_mode else app.answer_providers)
    ]
    logger.info(f"{name} chain: {', '.join(p.name for p in providers)}")
    return ProviderChain(name, providers)


def bootstrap_runtime(app: AppConfig, env: RuntimeEnv) -> AppRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    memory_store = MemoryStore(str(_resolve_path(app.db_path)))
    sessions = SessionManager(memory_store, title_chars=app.session_title_chars)
    quota = QuotaTracker(memory_store, daily_limit=app.daily_limit)
    catalog = ResourceCatalog.load(_resolve_path(app.catalog_path))

    orchestrator = DoubtOrchestrator(
        identity=build_identity_provider(app, env),
        quota=quota,
        sessions=sessions,
        resolver=AnswerResolver(build_chain("answer", app, env, json_mode=False)),
        matcher=ResourceMatcher(catalog, build_chain("resource-selector", app, env, json_mode=True)),
    )

    return AppRuntime(
        orchestrator=orchestrator,
        sessions=sessions,
        memory_store=memory_store,
        catalog=catalog,
        log_descriptions=log_descriptions,
    )
