"""
Event dispatch.

`handle_bors_event` is the single entry point of the event process: it
resolves the repository the event belongs to and routes the event (or the
command parsed from a comment) to its handler.
"""

from bors.commands import (
    Approve,
    BorsCommand,
    Help,
    ParseError,
    Ping,
    Try,
    TryCancel,
    Unapprove,
)
from bors.core.logging import get_logger
from bors.events import (
    BorsEvent,
    CommentPosted,
    PullRequestEdited,
    PullRequestOpened,
    PullRequestPushed,
    PushToBranch,
    Refresh,
    RepositoryEvent,
    WorkflowStarted,
    WorkflowStatusChanged,
)
from bors.handlers.ping import command_help, command_ping
from bors.handlers.pr_events import (
    handle_pull_request_edited,
    handle_pull_request_opened,
    handle_push_to_branch,
    handle_push_to_pull_request,
)
from bors.handlers.refresh import refresh_repositories
from bors.handlers.review import command_approve, command_unapprove
from bors.handlers.trybuild import command_try_build, command_try_cancel
from bors.handlers.workflows import (
    handle_workflow_started,
    handle_workflow_status_changed,
)
from bors.state import BorsContext, RepositoryState

logger = get_logger(__name__)


async def handle_bors_event(event: BorsEvent, ctx: BorsContext) -> None:
    if isinstance(event, Refresh):
        timed_out = await refresh_repositories(ctx)
        if timed_out:
            logger.info("Refresh timed out %d build(s)", timed_out)
        return

    if not isinstance(event, RepositoryEvent):
        logger.warning("Unhandled event %s", event.event_name)
        return

    repo = await ctx.repositories.get_repository_state(
        event.repository, event.installation_id
    )
    if repo is None:
        logger.warning(
            "Ignoring %s for unknown repository %s", event.event_name, event.repository
        )
        return

    if isinstance(event, CommentPosted):
        await handle_comment(repo, ctx, event)
    elif isinstance(event, PullRequestEdited):
        await handle_pull_request_edited(repo, ctx.db, event)
    elif isinstance(event, PullRequestPushed):
        await handle_push_to_pull_request(repo, ctx.db, event)
    elif isinstance(event, PullRequestOpened):
        await handle_pull_request_opened(repo, ctx.db, event)
    elif isinstance(event, PushToBranch):
        await handle_push_to_branch(repo, ctx.db, event)
    elif isinstance(event, WorkflowStarted):
        await handle_workflow_started(repo, ctx.db, event)
    elif isinstance(event, WorkflowStatusChanged):
        await handle_workflow_status_changed(repo, ctx.db, event)
    else:
        logger.warning("Unhandled event %s", event.event_name)


async def handle_comment(
    repo: RepositoryState, ctx: BorsContext, event: CommentPosted
) -> None:
    result = ctx.parser.parse(event.text, author=event.author.login)
    if result is None:
        return

    if isinstance(result, ParseError):
        await repo.client.post_comment(event.pr_number, f":exclamation: {result.message}")
        return

    logger.info(
        "Command %s from %s on %s#%d",
        type(result).__name__,
        event.author.login,
        repo.repository,
        event.pr_number,
    )
    try:
        await _run_command(repo, ctx, event, result)
    except Exception:
        await repo.client.post_comment(
            event.pr_number,
            ":x: Encountered an error while executing command",
        )
        raise


async def _run_command(
    repo: RepositoryState, ctx: BorsContext, event: CommentPosted, command: BorsCommand
) -> None:
    pr_number = event.pr_number
    if isinstance(command, Ping):
        await command_ping(repo, pr_number)
    elif isinstance(command, Help):
        await command_help(repo, pr_number, ctx.parser.prefix)
    elif isinstance(command, Approve):
        await command_approve(repo, ctx.db, pr_number, event.author, command.approver)
    elif isinstance(command, Unapprove):
        await command_unapprove(repo, ctx.db, pr_number, event.author)
    elif isinstance(command, Try):
        await command_try_build(
            repo, ctx.db, pr_number, event.author, command.parent, ctx.parser.prefix
        )
    elif isinstance(command, TryCancel):
        await command_try_cancel(repo, ctx.db, pr_number, event.author)
