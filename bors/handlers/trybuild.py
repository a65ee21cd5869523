"""
Try builds.

A try build merges the PR head onto its base branch (or an explicit parent) in
a scratch branch and pushes the merge commit to `TRY_BRANCH`, where CI picks it
up. The resulting build row is attached to the PR atomically.
"""

from typing import List, Optional

from bors.config import LabelTrigger
from bors.core.logging import get_logger
from bors.db.client import DbClient
from bors.github.client import GitHubAPIError, MergeConflictError
from bors.github.models import GithubUser
from bors.handlers.labels import handle_label_trigger
from bors.handlers.permissions import check_write_permission
from bors.models import Build, BuildStatus, WorkflowStatus, WorkflowType
from bors.state import RepositoryState

logger = get_logger(__name__)

TRY_MERGE_BRANCH = "automation/bors/try-merge"
TRY_BRANCH = "automation/bors/try"


async def command_try_build(
    repo: RepositoryState,
    db: DbClient,
    pr_number: int,
    author: GithubUser,
    parent: Optional[str] = None,
    prefix: str = "@bors",
) -> None:
    if not await check_write_permission(repo, pr_number, author, "try"):
        return

    gh_pr = await repo.client.get_pull_request(pr_number)
    pr = await db.get_or_create_pull_request(
        repo.repository,
        pr_number,
        base_branch=gh_pr.base.name,
        mergeable_state=gh_pr.mergeable_state,
    )

    if pr.try_build is not None and pr.try_build.build_status is BuildStatus.PENDING:
        logger.info("Try build already running on %s#%d", repo.repository, pr_number)
        await repo.client.post_comment(
            pr_number,
            ":warning: A try build is currently in progress. You can cancel it "
            f"using `{prefix} try cancel`.",
        )
        return

    base_sha = parent or await repo.client.get_branch_sha(gh_pr.base.name)
    await repo.client.set_branch_to_sha(TRY_MERGE_BRANCH, base_sha)
    try:
        merge_sha = await repo.client.merge_branches(
            TRY_MERGE_BRANCH,
            gh_pr.head.sha,
            f"Auto merge of #{pr_number} - {gh_pr.head.name}, r=<try>\n\n{gh_pr.title}",
        )
    except MergeConflictError:
        logger.info("Try merge of %s#%d has conflicts", repo.repository, pr_number)
        await repo.client.post_comment(
            pr_number,
            f":lock: Merge conflict\n\nThis pull request and the base `{base_sha}` "
            "cannot be merged automatically. Please rebase the PR.",
        )
        return

    await repo.client.set_branch_to_sha(TRY_BRANCH, merge_sha)
    await db.attach_try_build(pr, TRY_BRANCH, merge_sha, base_sha)
    await handle_label_trigger(repo, pr_number, LabelTrigger.TRY)
    await repo.client.post_comment(
        pr_number,
        f":hourglass: Trying commit {gh_pr.head.sha} with merge {merge_sha}…",
    )


async def command_try_cancel(
    repo: RepositoryState, db: DbClient, pr_number: int, author: GithubUser
) -> None:
    if not await check_write_permission(repo, pr_number, author, "try"):
        return

    pr = await db.get_or_create_pull_request(repo.repository, pr_number)
    build = pr.try_build
    if build is None or build.build_status is not BuildStatus.PENDING:
        await repo.client.post_comment(
            pr_number, ":exclamation: There is currently no try build in progress."
        )
        return

    if not await db.update_build_status(build, BuildStatus.CANCELLED):
        return

    workflow_urls = []
    try:
        workflow_urls = await cancel_build_workflows(repo, db, build)
    except GitHubAPIError as e:
        logger.error("Cannot cancel workflows of build %s: %s", build.id, e)
        await repo.client.post_comment(
            pr_number,
            "Try build was cancelled. It was not possible to cancel some workflows.",
        )
        return

    text = "Try build cancelled."
    if workflow_urls:
        text += "\nCancelled workflows:\n" + "\n".join(f"- {url}" for url in workflow_urls)
    await repo.client.post_comment(pr_number, text)


async def cancel_build_workflows(
    repo: RepositoryState, db: DbClient, build: Build
) -> List[str]:
    """
    Cancel the still running GitHub Actions workflows of `build`.

    Returns:
        URLs of the cancelled workflows.
    """
    workflows = [
        workflow
        for workflow in await db.get_workflows_for_build(build)
        if workflow.workflow_status is WorkflowStatus.PENDING
        and workflow.workflow_type == WorkflowType.GITHUB.value
    ]
    if workflows:
        await repo.client.cancel_workflows([w.github_run_id for w in workflows])
    return [w.url for w in workflows]
