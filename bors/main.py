"""
Process entry point.

Settings come from the environment, a `.env` file or command line flags
(e.g. `bors --APP_ID 123 --DATABASE_URL postgresql://...`).
"""

import sys
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from pydantic import ValidationError

from bors.api.middleware import ConcurrencyLimitMiddleware
from bors.api.router import router
from bors.core.config import Settings
from bors.core.lifespan import create_lifespan
from bors.core.logging import get_logger, setup_logging
from bors.state import RepositoryResolver

logger = get_logger(__name__)


def create_app(
    settings: Settings, repositories: Optional[RepositoryResolver] = None
) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        lifespan=create_lifespan(settings, repositories),
    )
    app.state.settings = settings
    app.add_middleware(
        ConcurrencyLimitMiddleware, max_requests=settings.MAX_CONCURRENT_REQUESTS
    )

    @app.get("/")
    def root():
        return {"message": f"Hello from {settings.PROJECT_NAME}!"}

    app.include_router(router)
    return app


def main() -> None:
    import uvicorn

    load_dotenv()
    try:
        settings = Settings(_cli_parse_args=True)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.LOG_LEVEL)
    app = create_app(settings)
    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.HOST, port=settings.PORT, log_config=None)
    )
    try:
        server.run()
    except Exception as e:
        logger.error("Bot terminated: %s", e, exc_info=True)
        sys.exit(1)
    # Lifespan startup failed (database or GitHub App unreachable)
    if not server.started:
        logger.error("Bot could not start")
        sys.exit(1)


if __name__ == "__main__":
    main()
