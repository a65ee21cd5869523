"""
Events processed by the bot.

Webhook deliveries are converted into these repository-agnostic types before
they are handed to the event process.
"""

from typing import Optional

from pydantic import BaseModel

from bors.github.models import GithubRepoName, GithubUser, PullRequest
from bors.models import WorkflowStatus, WorkflowType


class BorsEvent(BaseModel):
    """Base class of every event; `delivery_id` is GitHub's X-GitHub-Delivery."""

    delivery_id: Optional[str] = None

    @property
    def event_name(self) -> str:
        return type(self).__name__


class RepositoryEvent(BorsEvent):
    """An event that happened in a specific repository."""

    repository: GithubRepoName
    installation_id: Optional[int] = None


class CommentPosted(RepositoryEvent):
    pr_number: int
    author: GithubUser
    text: str


class PullRequestOpened(RepositoryEvent):
    pull_request: PullRequest


class PullRequestEdited(RepositoryEvent):
    pull_request: PullRequest
    # Set only when the base branch was changed by the edit
    from_base_sha: Optional[str] = None


class PullRequestPushed(RepositoryEvent):
    pull_request: PullRequest


class PushToBranch(RepositoryEvent):
    branch: str
    sha: str


class WorkflowStarted(RepositoryEvent):
    name: str
    branch: str
    commit_sha: str
    run_id: int
    url: str
    workflow_type: WorkflowType = WorkflowType.GITHUB


class WorkflowStatusChanged(RepositoryEvent):
    run_id: int
    branch: str
    commit_sha: str
    status: WorkflowStatus
    workflow_type: WorkflowType = WorkflowType.GITHUB


class Refresh(BorsEvent):
    """Periodic housekeeping tick (build timeouts)."""
