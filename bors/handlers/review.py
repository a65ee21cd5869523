"""
Approval commands (`r+`, `r=<user>`, `r-`).

Re-approving an already approved PR overwrites the recorded approver, so the
latest `r+` always wins.
"""

from typing import Optional

from bors.config import LabelTrigger
from bors.core.logging import get_logger
from bors.db.client import DbClient
from bors.github.models import GithubUser
from bors.handlers.labels import handle_label_trigger
from bors.handlers.permissions import check_write_permission
from bors.state import RepositoryState

logger = get_logger(__name__)


async def command_approve(
    repo: RepositoryState,
    db: DbClient,
    pr_number: int,
    author: GithubUser,
    approver: Optional[str] = None,
) -> None:
    if not await check_write_permission(repo, pr_number, author, "review"):
        return

    approver = approver or author.login
    gh_pr = await repo.client.get_pull_request(pr_number)
    pr = await db.get_or_create_pull_request(
        repo.repository,
        pr_number,
        base_branch=gh_pr.base.name,
        mergeable_state=gh_pr.mergeable_state,
    )
    if pr.approved_by is not None and pr.approved_by != approver:
        logger.info(
            "Approver of %s#%d changes from %s to %s",
            repo.repository,
            pr_number,
            pr.approved_by,
            approver,
        )

    await db.approve(pr, approver)
    await handle_label_trigger(repo, pr_number, LabelTrigger.APPROVED)
    await repo.client.post_comment(
        pr_number,
        f":pushpin: Commit {gh_pr.head.sha} has been approved by `{approver}`",
    )


async def command_unapprove(
    repo: RepositoryState, db: DbClient, pr_number: int, author: GithubUser
) -> None:
    if not await check_write_permission(repo, pr_number, author, "review"):
        return

    pr = await db.get_or_create_pull_request(repo.repository, pr_number)
    await db.unapprove(pr)
    await handle_label_trigger(repo, pr_number, LabelTrigger.UNAPPROVED)
    await repo.client.post_comment(
        pr_number, f"Approval was removed by `{author.login}`."
    )
