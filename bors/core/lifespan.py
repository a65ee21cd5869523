import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from bors.commands import CommandParser
from bors.core.config import Settings
from bors.core.logging import get_logger
from bors.db.client import DbClient
from bors.db.session import check_connection, create_engine, create_session_factory
from bors.github.app import GithubAppState
from bors.handlers import handle_bors_event
from bors.process import BorsProcess, refresh_ticker
from bors.state import BorsContext, RepositoryResolver

logger = get_logger(__name__)


def _watch_process(process: BorsProcess):
    def on_done(task: asyncio.Task) -> None:
        if process.closed and not task.cancelled() and task.exception() is None:
            return
        _warn_process_ended(task)

    return on_done


def _warn_process_ended(task: asyncio.Task) -> None:
    # HTTP keeps being served; deliveries are accepted but not acted on
    if task.cancelled():
        logger.warning("Webhook process was cancelled")
    elif task.exception() is not None:
        logger.warning("Webhook process has ended: %s", task.exception())
    else:
        logger.warning("Webhook process has ended")


def create_lifespan(settings: Settings, repositories: Optional[RepositoryResolver] = None):
    """
    Build the lifespan of the FastAPI application.

    Startup connects to the database, authenticates as the GitHub App (unless
    a resolver is injected) and starts the event process plus its refresh
    ticker. Shutdown drains the process and disposes the engine.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 1. Database
        engine = create_engine(settings.DATABASE_URL)
        try:
            await check_connection(engine)
            db = DbClient(create_session_factory(engine))

            # 2. GitHub App
            bot_login = settings.BOT_LOGIN
            resolver = repositories
            if resolver is None:
                gh_app = await GithubAppState.load(
                    settings.APP_ID,
                    settings.PRIVATE_KEY.get_secret_value(),
                    api_url=settings.GITHUB_API_URL,
                    timeout=settings.GITHUB_TIMEOUT_SECONDS,
                )
                bot_login = bot_login or gh_app.bot_login
                resolver = gh_app
        except Exception:
            logger.error("Startup failed, disposing database engine")
            await engine.dispose()
            raise

        # 3. Event process
        ctx = BorsContext(
            db=db,
            parser=CommandParser(settings.CMD_PREFIX, bot_login=bot_login),
            repositories=resolver,
        )
        process = BorsProcess(lambda event: handle_bors_event(event, ctx))
        process.start().add_done_callback(_watch_process(process))
        ticker = asyncio.create_task(
            refresh_ticker(process, settings.REFRESH_INTERVAL_SECONDS)
        )

        app.state.settings = settings
        app.state.process = process
        app.state.context = ctx

        yield

        # 4. Stop ticker
        ticker.cancel()
        try:
            await ticker
        except asyncio.CancelledError:
            pass

        # 5. Drain queued events
        await process.close()

        # 6. Dispose Database Engine
        await engine.dispose()

    return lifespan
