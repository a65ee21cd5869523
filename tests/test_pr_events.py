"""Tests for pull request and push events."""

from bors.events import PullRequestOpened, PushToBranch
from bors.github.models import GithubRepoName
from bors.handlers import handle_bors_event
from bors.models import MergeableState
from bors.state import RepositoryState
from tests.conftest import ADMIN, REPO, FakeRepositoryClient, comment, edited, pushed


async def approve(ctx, gh, number=1, **kwargs):
    pr = gh.add_pull_request(number, **kwargs)
    await handle_bors_event(comment(number, "@bors r+"), ctx)
    return pr


async def test_opened_creates_row(ctx, gh, db):
    pr = gh.add_pull_request(5, base="beta")

    await handle_bors_event(PullRequestOpened(repository=REPO, pull_request=pr), ctx)

    stored = await db.get_pull_request(REPO, 5)
    assert stored.base_branch == "beta"
    assert not stored.is_approved()


async def test_base_change_unapproves(ctx, gh, db):
    pr = await approve(ctx, gh)
    gh.comments.clear()

    retargeted = pr.model_copy(update={"base": pr.base.model_copy(update={"name": "beta"})})
    await handle_bors_event(edited(retargeted, from_base_sha="old-base"), ctx)

    stored = await db.get_pull_request(REPO, 1)
    assert not stored.is_approved()
    assert stored.base_branch == "beta"
    assert gh.comments[1] == [
        ":warning: The base branch changed to `beta`, and the\n"
        "PR will need to be re-approved."
    ]
    assert "approved" not in gh.labels[1]


async def test_edit_without_base_change_keeps_approval(ctx, gh, db):
    pr = await approve(ctx, gh)
    gh.comments.clear()

    await handle_bors_event(edited(pr.model_copy(update={"title": "New title"})), ctx)

    assert (await db.get_pull_request(REPO, 1)).is_approved()
    assert gh.comments == {}


async def test_base_change_of_unapproved_pr_is_silent(ctx, gh, db):
    pr = gh.add_pull_request(1)

    await handle_bors_event(edited(pr, from_base_sha="old-base"), ctx)

    assert (await db.get_pull_request(REPO, 1)) is not None
    assert gh.comments == {}


async def test_push_unapproves(ctx, gh, db):
    pr = await approve(ctx, gh)
    gh.comments.clear()

    new_head = pr.model_copy(update={"head": pr.head.model_copy(update={"sha": "f00d"})})
    await handle_bors_event(pushed(new_head), ctx)

    assert not (await db.get_pull_request(REPO, 1)).is_approved()
    assert gh.comments[1] == [
        ":warning: A new commit `f00d` was pushed to the branch, the\n"
        "PR will need to be re-approved."
    ]


async def test_duplicate_push_comments_once(ctx, gh):
    pr = await approve(ctx, gh)
    gh.comments.clear()

    await handle_bors_event(pushed(pr), ctx)
    await handle_bors_event(pushed(pr), ctx)

    assert len(gh.comments[1]) == 1


async def test_push_to_unapproved_pr_is_noop(ctx, gh, db):
    pr = gh.add_pull_request(1)

    await handle_bors_event(pushed(pr), ctx)

    assert gh.comments == {}


async def test_push_to_branch_resets_mergeable_state(ctx, db):
    await db.get_or_create_pull_request(
        REPO, 1, base_branch="main", mergeable_state=MergeableState.MERGEABLE
    )
    await db.get_or_create_pull_request(
        REPO, 2, base_branch="beta", mergeable_state=MergeableState.MERGEABLE
    )

    await handle_bors_event(PushToBranch(repository=REPO, branch="main", sha="new"), ctx)

    assert (await db.get_pull_request(REPO, 1)).mergeable_state == "unknown"
    assert (await db.get_pull_request(REPO, 2)).mergeable_state == "mergeable"


async def test_push_to_branch_of_other_repository(ctx, db, repo_config):
    other = GithubRepoName(owner="rust-lang", name="cargo")
    ctx.repositories.states[other] = RepositoryState(
        repository=other, client=FakeRepositoryClient(other), config=repo_config
    )
    for repository in (REPO, other):
        await db.get_or_create_pull_request(
            repository, 1, base_branch="main", mergeable_state=MergeableState.MERGEABLE
        )

    await handle_bors_event(PushToBranch(repository=other, branch="main", sha="new"), ctx)

    assert (await db.get_pull_request(REPO, 1)).mergeable_state == "mergeable"
    assert (await db.get_pull_request(other, 1)).mergeable_state == "unknown"


async def test_approval_lifecycle(ctx, gh, db):
    pr = gh.add_pull_request(1, head_sha="c0ffee", base="main")

    await handle_bors_event(PullRequestOpened(repository=REPO, pull_request=pr), ctx)
    stored = await db.get_pull_request(REPO, 1)
    assert stored.base_branch == "main"
    assert not stored.is_approved()

    await handle_bors_event(comment(1, "@bors r+"), ctx)
    assert (await db.get_pull_request(REPO, 1)).approved_by == ADMIN.login
    assert len(gh.comments[1]) == 1

    await handle_bors_event(comment(1, "@bors r+"), ctx)
    assert (await db.get_pull_request(REPO, 1)).approved_by == ADMIN.login
    assert len(gh.comments[1]) == 2

    retargeted = pr.model_copy(update={"base": pr.base.model_copy(update={"name": "beta"})})
    await handle_bors_event(edited(retargeted, from_base_sha="main-sha"), ctx)
    stored = await db.get_pull_request(REPO, 1)
    assert not stored.is_approved()
    assert stored.base_branch == "beta"
    assert len(gh.comments[1]) == 3
    assert "beta" in gh.last_comment(1)

    new_head = retargeted.model_copy(
        update={"head": retargeted.head.model_copy(update={"sha": "abc123"})}
    )
    await handle_bors_event(pushed(new_head), ctx)
    assert not (await db.get_pull_request(REPO, 1)).is_approved()
    assert len(gh.comments[1]) == 3
