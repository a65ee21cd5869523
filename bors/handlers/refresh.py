"""
Periodic housekeeping: time out builds that never finished.
"""

from datetime import datetime
from typing import Optional

from bors.config import LabelTrigger
from bors.core.logging import get_logger
from bors.db.client import DbClient
from bors.github.client import GitHubAPIError
from bors.handlers.labels import handle_label_trigger
from bors.handlers.trybuild import cancel_build_workflows
from bors.models import BuildStatus
from bors.state import BorsContext, RepositoryState

logger = get_logger(__name__)


async def refresh_repositories(ctx: BorsContext, now: Optional[datetime] = None) -> int:
    """
    Check build timeouts of every repository that has a pending build.

    Returns:
        Total number of builds that were timed out.
    """
    timed_out = 0
    for repository in await ctx.db.get_repositories_with_running_builds():
        try:
            repo = await ctx.repositories.get_repository_state(repository, None)
        except GitHubAPIError as e:
            logger.error("Cannot load repository %s: %s", repository, e)
            continue
        if repo is None:
            continue
        timed_out += await check_build_timeouts(repo, ctx.db, now)
    return timed_out


async def check_build_timeouts(
    repo: RepositoryState, db: DbClient, now: Optional[datetime] = None
) -> int:
    timed_out = 0
    for build in await db.get_running_builds(repo.repository):
        if build.age(now) < repo.config.timeout:
            continue
        if not await db.update_build_status(build, BuildStatus.TIMEOUTED):
            continue
        timed_out += 1
        logger.info("Build %s of %s timed out", build.id, repo.repository)

        try:
            await cancel_build_workflows(repo, db, build)
        except GitHubAPIError as e:
            logger.error("Cannot cancel workflows of build %s: %s", build.id, e)

        pr = await db.find_pr_by_build(build)
        if pr is None:
            continue
        await handle_label_trigger(repo, pr.number, LabelTrigger.TRY_FAILED)
        await repo.client.post_comment(
            pr.number, f":boom: Test timed out after `{repo.config.timeout}`s"
        )
    return timed_out
