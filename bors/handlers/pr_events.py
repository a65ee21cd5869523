from bors.config import LabelTrigger
from bors.core.logging import get_logger
from bors.db.client import DbClient
from bors.events import PullRequestEdited, PullRequestOpened, PullRequestPushed, PushToBranch
from bors.handlers.labels import handle_label_trigger
from bors.models import MergeableState
from bors.state import RepositoryState

logger = get_logger(__name__)


async def handle_pull_request_edited(
    repo: RepositoryState, db: DbClient, payload: PullRequestEdited
) -> None:
    pr = payload.pull_request
    pr_model = await db.get_or_create_pull_request(
        repo.repository,
        pr.number,
        base_branch=pr.base.name,
        mergeable_state=pr.mergeable_state,
    )

    # Only a base branch change invalidates the approval
    if payload.from_base_sha is None:
        return
    if not pr_model.is_approved():
        return

    await db.unapprove(pr_model)
    await handle_label_trigger(repo, pr.number, LabelTrigger.UNAPPROVED)
    await repo.client.post_comment(
        pr.number,
        f":warning: The base branch changed to `{pr.base.name}`, and the\n"
        "PR will need to be re-approved.",
    )


async def handle_push_to_pull_request(
    repo: RepositoryState, db: DbClient, payload: PullRequestPushed
) -> None:
    pr = payload.pull_request
    pr_model = await db.get_or_create_pull_request(
        repo.repository,
        pr.number,
        base_branch=pr.base.name,
        mergeable_state=pr.mergeable_state,
    )

    if not pr_model.is_approved():
        return

    await db.unapprove(pr_model)
    await handle_label_trigger(repo, pr.number, LabelTrigger.UNAPPROVED)
    await repo.client.post_comment(
        pr.number,
        f":warning: A new commit `{pr.head.sha}` was pushed to the branch, the\n"
        "PR will need to be re-approved.",
    )


async def handle_pull_request_opened(
    repo: RepositoryState, db: DbClient, payload: PullRequestOpened
) -> None:
    await db.create_pull_request(
        repo.repository,
        payload.pull_request.number,
        payload.pull_request.base.name,
    )


async def handle_push_to_branch(
    repo: RepositoryState, db: DbClient, payload: PushToBranch
) -> None:
    rows = await db.update_mergeable_states_by_base_branch(
        repo.repository, payload.branch, MergeableState.UNKNOWN
    )
    logger.info(
        "Updated mergeable_state to `unknown` for %d PR(s) targeting %s in %s",
        rows,
        payload.branch,
        repo.repository,
    )
