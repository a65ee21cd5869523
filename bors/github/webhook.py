"""GitHub webhook handling: payload parsing into typed events."""

from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from bors.core.logging import get_logger
from bors.events import (
    CommentPosted,
    PullRequestEdited,
    PullRequestOpened,
    PullRequestPushed,
    PushToBranch,
    RepositoryEvent,
    WorkflowStarted,
    WorkflowStatusChanged,
)
from bors.github.models import GithubRepoName, GithubUser, PullRequest
from bors.models import WorkflowStatus, WorkflowType

logger = get_logger(__name__)

# Check runs created by GitHub Actions are tracked through workflow_run events
GITHUB_ACTIONS_APP_SLUG = "github-actions"


class WebhookParseError(ValueError):
    """The payload of a supported event is malformed."""


def parse_webhook_event(
    event_type: str, payload: Dict[str, Any], delivery_id: Optional[str] = None
) -> Optional[RepositoryEvent]:
    """
    Convert a webhook payload into a typed event.

    Args:
        event_type: The X-GitHub-Event header value (e.g. "push", "pull_request").
        payload: The decoded JSON body.
        delivery_id: The X-GitHub-Delivery header value.

    Returns:
        The event, or None if the delivery is not relevant to the bot.

    Raises:
        WebhookParseError: If a relevant payload is missing required fields.
    """
    parser = _PARSERS.get(event_type)
    if parser is None:
        return None

    try:
        common = {
            "repository": GithubRepoName.parse(payload["repository"]["full_name"]),
            "installation_id": (payload.get("installation") or {}).get("id"),
            "delivery_id": delivery_id,
        }
        return parser(payload, common)
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise WebhookParseError(f"Malformed {event_type} payload: {e}") from e


def _parse_issue_comment(payload: dict, common: dict) -> Optional[RepositoryEvent]:
    issue = payload["issue"]
    # Comments on plain issues are ignored
    if payload.get("action") != "created" or "pull_request" not in issue:
        return None
    comment = payload["comment"]
    return CommentPosted(
        pr_number=issue["number"],
        author=GithubUser(login=comment["user"]["login"], id=comment["user"].get("id")),
        text=comment.get("body") or "",
        **common,
    )


def _parse_pull_request(payload: dict, common: dict) -> Optional[RepositoryEvent]:
    action = payload.get("action")
    pull_request = PullRequest.from_payload(payload["pull_request"])

    if action in ("opened", "reopened"):
        return PullRequestOpened(pull_request=pull_request, **common)
    if action == "edited":
        base_change = (payload.get("changes") or {}).get("base") or {}
        from_base_sha = (base_change.get("sha") or {}).get("from")
        return PullRequestEdited(
            pull_request=pull_request, from_base_sha=from_base_sha, **common
        )
    if action == "synchronize":
        return PullRequestPushed(pull_request=pull_request, **common)
    return None


def _parse_push(payload: dict, common: dict) -> Optional[RepositoryEvent]:
    ref: str = payload["ref"]
    if payload.get("deleted") or not ref.startswith("refs/heads/"):
        return None
    return PushToBranch(
        branch=ref[len("refs/heads/") :], sha=payload["after"], **common
    )


def _parse_workflow_run(payload: dict, common: dict) -> Optional[RepositoryEvent]:
    run = payload["workflow_run"]
    action = payload.get("action")

    if action in ("requested", "in_progress"):
        return WorkflowStarted(
            name=run["name"],
            branch=run["head_branch"],
            commit_sha=run["head_sha"],
            run_id=run["id"],
            url=run["html_url"],
            workflow_type=WorkflowType.GITHUB,
            **common,
        )
    if action == "completed":
        return WorkflowStatusChanged(
            run_id=run["id"],
            branch=run["head_branch"],
            commit_sha=run["head_sha"],
            status=_conclusion_to_status(run.get("conclusion")),
            workflow_type=WorkflowType.GITHUB,
            **common,
        )
    return None


def _parse_check_run(payload: dict, common: dict) -> Optional[RepositoryEvent]:
    check_run = payload["check_run"]
    app_slug = (check_run.get("app") or {}).get("slug")
    if app_slug == GITHUB_ACTIONS_APP_SLUG:
        return None

    branch = (check_run.get("check_suite") or {}).get("head_branch")
    if not branch:
        return None

    action = payload.get("action")
    if action == "created":
        return WorkflowStarted(
            name=check_run["name"],
            branch=branch,
            commit_sha=check_run["head_sha"],
            run_id=check_run["id"],
            url=check_run.get("html_url") or "",
            workflow_type=WorkflowType.EXTERNAL,
            **common,
        )
    if action == "completed":
        return WorkflowStatusChanged(
            run_id=check_run["id"],
            branch=branch,
            commit_sha=check_run["head_sha"],
            status=_conclusion_to_status(check_run.get("conclusion")),
            workflow_type=WorkflowType.EXTERNAL,
            **common,
        )
    return None


def _conclusion_to_status(conclusion: Optional[str]) -> WorkflowStatus:
    if conclusion in ("success", "neutral", "skipped"):
        return WorkflowStatus.SUCCESS
    return WorkflowStatus.FAILURE


_PARSERS: Dict[str, Callable[[dict, dict], Optional[RepositoryEvent]]] = {
    "issue_comment": _parse_issue_comment,
    "pull_request": _parse_pull_request,
    "push": _parse_push,
    "workflow_run": _parse_workflow_run,
    "check_run": _parse_check_run,
}
