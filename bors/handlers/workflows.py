"""
CI workflow tracking.

Workflow rows are created when a run starts on a commit that belongs to a
known build. Status updates for run ids that were never recorded are ignored.
A pending build is finished once every one of its workflows is terminal.
"""

from bors.config import LabelTrigger
from bors.core.logging import get_logger
from bors.db.client import DbClient
from bors.events import WorkflowStarted, WorkflowStatusChanged
from bors.handlers.labels import handle_label_trigger
from bors.models import Build, BuildStatus, WorkflowStatus
from bors.state import RepositoryState

logger = get_logger(__name__)


async def handle_workflow_started(
    repo: RepositoryState, db: DbClient, payload: WorkflowStarted
) -> None:
    build = await db.find_build(repo.repository, payload.branch, payload.commit_sha)
    if build is None:
        logger.debug(
            "Workflow %s on %s@%s does not belong to a build",
            payload.run_id,
            payload.branch,
            payload.commit_sha,
        )
        return
    if build.build_status is not BuildStatus.PENDING:
        logger.info("Ignoring workflow %s of finished build %s", payload.run_id, build.id)
        return

    logger.info("Workflow %s started for build %s", payload.run_id, build.id)
    await db.create_workflow(
        build,
        payload.name,
        payload.url,
        payload.run_id,
        payload.workflow_type,
        WorkflowStatus.PENDING,
    )


async def handle_workflow_status_changed(
    repo: RepositoryState, db: DbClient, payload: WorkflowStatusChanged
) -> None:
    updated = await db.update_workflow_status(
        payload.run_id, payload.status, payload.workflow_type
    )
    logger.info(
        "Workflow %s finished with %s (%d row(s) updated)",
        payload.run_id,
        payload.status.value,
        updated,
    )

    build = await db.find_build(repo.repository, payload.branch, payload.commit_sha)
    if build is None or build.build_status is not BuildStatus.PENDING:
        return
    await maybe_complete_build(repo, db, build)


async def maybe_complete_build(repo: RepositoryState, db: DbClient, build: Build) -> None:
    """Finish `build` if all of its workflows have reported a final status."""
    workflows = await db.get_workflows_for_build(build)
    if not workflows or any(not w.workflow_status.is_terminal for w in workflows):
        return

    failed = [w for w in workflows if w.workflow_status is WorkflowStatus.FAILURE]
    status = BuildStatus.FAILURE if failed else BuildStatus.SUCCESS
    if not await db.update_build_status(build, status):
        return

    pr = await db.find_pr_by_build(build)
    if pr is None:
        logger.warning("Build %s finished but is not attached to any PR", build.id)
        return

    workflow_list = "\n".join(
        f"- [{w.name}]({w.url}) "
        + (":x:" if w.workflow_status is WorkflowStatus.FAILURE else ":white_check_mark:")
        for w in workflows
    )
    if failed:
        await handle_label_trigger(repo, pr.number, LabelTrigger.TRY_FAILED)
        await repo.client.post_comment(
            pr.number, f":broken_heart: Test failed\n{workflow_list}"
        )
    else:
        await repo.client.post_comment(
            pr.number,
            f":sunny: Try build successful\n{workflow_list}\n"
            f"Build commit: `{build.commit_sha}`",
        )

