"""Tests for ping, help and the approval commands, driven through the dispatcher."""

import pytest

from bors.github.client import GitHubAPIError
from bors.handlers import handle_bors_event
from tests.conftest import ADMIN, OUTSIDER, REPO, comment


async def test_ping(ctx, gh, db):
    await handle_bors_event(comment(1, "@bors ping"), ctx)

    assert gh.comments[1] == ["Pong 🏓!"]
    assert gh.labels == {}
    assert await db.get_pull_request(REPO, 1) is None


async def test_help_lists_commands(ctx, gh):
    await handle_bors_event(comment(1, "@bors help"), ctx)

    text = gh.last_comment(1)
    assert "`@bors r+`" in text
    assert "`@bors try cancel`" in text


async def test_comment_without_command_is_ignored(ctx, gh, db):
    await handle_bors_event(comment(1, "LGTM"), ctx)

    assert gh.comments == {}
    assert await db.get_pull_request(REPO, 1) is None


async def test_parse_error_is_reported(ctx, gh):
    await handle_bors_event(comment(1, "@bors r="), ctx)

    assert gh.last_comment(1).startswith(":exclamation:")


async def test_approve(ctx, gh, db):
    gh.add_pull_request(1, head_sha="c0ffee")

    await handle_bors_event(comment(1, "@bors r+"), ctx)

    pr = await db.get_pull_request(REPO, 1)
    assert pr.approved_by == ADMIN.login
    assert pr.base_branch == "main"
    assert gh.labels[1] == {"approved"}
    assert gh.last_comment(1) == (
        f":pushpin: Commit c0ffee has been approved by `{ADMIN.login}`"
    )


async def test_approve_on_behalf(ctx, gh, db):
    gh.add_pull_request(1)

    await handle_bors_event(comment(1, "@bors r=alice"), ctx)

    assert (await db.get_pull_request(REPO, 1)).approved_by == "alice"


async def test_second_approval_overwrites_approver(ctx, gh, db):
    gh.add_pull_request(1, head_sha="c0ffee")

    await handle_bors_event(comment(1, "@bors r=alice"), ctx)
    await handle_bors_event(comment(1, "@bors r=bob"), ctx)

    assert (await db.get_pull_request(REPO, 1)).approved_by == "bob"
    assert len(gh.comments[1]) == 2
    assert "`bob`" in gh.last_comment(1)


async def test_approve_requires_permission(ctx, gh, db):
    gh.add_pull_request(1)

    await handle_bors_event(comment(1, "@bors r+", author=OUTSIDER), ctx)

    assert await db.get_pull_request(REPO, 1) is None
    assert "Insufficient privileges" in gh.last_comment(1)


async def test_unapprove(ctx, gh, db):
    gh.add_pull_request(1)
    await handle_bors_event(comment(1, "@bors r+"), ctx)

    await handle_bors_event(comment(1, "@bors r-"), ctx)

    assert not (await db.get_pull_request(REPO, 1)).is_approved()
    assert gh.labels[1] == set()
    assert gh.last_comment(1) == f"Approval was removed by `{ADMIN.login}`."


async def test_label_failure_does_not_undo_approval(ctx, gh, db):
    gh.add_pull_request(1)
    gh.fail_labels = True

    await handle_bors_event(comment(1, "@bors r+"), ctx)

    assert (await db.get_pull_request(REPO, 1)).is_approved()
    assert gh.last_comment(1).startswith(":pushpin:")


async def test_command_error_is_reported_and_raised(ctx, gh):
    # PR 404 is unknown to the fake GitHub
    with pytest.raises(GitHubAPIError):
        await handle_bors_event(comment(404, "@bors r+"), ctx)

    assert gh.last_comment(404).startswith(":x:")
