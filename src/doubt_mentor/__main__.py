import uvicorn
from dotenv import load_dotenv
from loguru import logger

from doubt_mentor.app_config import load_json_config, parse_app_config, resolve_runtime_env
from doubt_mentor.bootstrap import bootstrap_runtime
from doubt_mentor.server import create_app


def main() -> None:
    load_dotenv()

    app_config = parse_app_config(load_json_config())
    env = resolve_runtime_env()
    runtime = bootstrap_runtime(app_config, env)

    if not env.gemini_api_key and any(p.provider == "gemini" for p in app_config.answer_providers):
        logger.warning("GEMINI_API_KEY is not set; every Gemini provider will fail and answers will fall back")
    if runtime.log_descriptions:
        logger.info(f"Logging: {', '.join(runtime.log_descriptions)}")
    logger.info(f"Resources: {len(runtime.catalog)} | daily limit: {app_config.daily_limit}")

    app = create_app(runtime.orchestrator, runtime.sessions)
    try:
        # log_config=None leaves uvicorn's loggers routed through loguru.
        uvicorn.run(
            app,
            host=app_config.host,
            port=app_config.port,
            log_level=app_config.log_level.lower(),
            log_config=None,
        )
    finally:
        runtime.close()


if __name__ == "__main__":
    main()
