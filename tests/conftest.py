"""Shared fixtures.

Database tests run against a throwaway SQLite file (aiosqlite), so the same
`INSERT ... ON CONFLICT DO NOTHING` paths used with PostgreSQL are exercised
without a database server. GitHub is replaced by an in-memory client.
"""

from typing import Dict, List, Optional, Set

import pytest
import pytest_asyncio
from sqlmodel import SQLModel

from bors import models  # noqa: F401
from bors.commands import CommandParser
from bors.config import LabelModification, LabelTrigger, RepositoryConfig
from bors.db.client import DbClient
from bors.db.session import create_engine, create_session_factory
from bors.events import CommentPosted, PullRequestEdited, PullRequestPushed
from bors.github.client import GitHubAPIError, MergeConflictError, RepositoryClient
from bors.github.models import Branch, GithubRepoName, GithubUser, PullRequest
from bors.models import MergeableState
from bors.state import BorsContext, RepositoryResolver, RepositoryState

REPO = GithubRepoName(owner="rust-lang", name="bors")
BOT_LOGIN = "bors[bot]"
ADMIN = GithubUser(login="maintainer", id=1)
OUTSIDER = GithubUser(login="drive-by", id=2)


class FakeRepositoryClient(RepositoryClient):
    """In-memory stand-in for the GitHub API of one repository."""

    def __init__(self, repository: GithubRepoName = REPO):
        self.repository = repository
        self.comments: Dict[int, List[str]] = {}
        self.labels: Dict[int, Set[str]] = {}
        self.branches: Dict[str, str] = {"main": "main-sha"}
        self.pull_requests: Dict[int, PullRequest] = {}
        self.writers: Set[str] = {ADMIN.login}
        self.cancelled_runs: List[int] = []
        self.config_file: Optional[str] = None
        self.merge_conflict = False
        self.fail_labels = False
        self._merges = 0

    def add_pull_request(
        self, number: int, head_sha: str = "head-sha", base: str = "main"
    ) -> PullRequest:
        pr = PullRequest(
            number=number,
            title=f"PR {number}",
            author=GithubUser(login="contributor"),
            head=Branch(name=f"feature-{number}", sha=head_sha),
            base=Branch(name=base, sha=self.branches.get(base, "")),
            mergeable_state=MergeableState.MERGEABLE,
        )
        self.pull_requests[number] = pr
        return pr

    def last_comment(self, pr_number: int) -> str:
        return self.comments[pr_number][-1]

    async def get_pull_request(self, pr_number: int) -> PullRequest:
        if pr_number not in self.pull_requests:
            raise GitHubAPIError(f"PR {pr_number} not found", status_code=404)
        return self.pull_requests[pr_number]

    async def post_comment(self, pr_number: int, text: str) -> None:
        self.comments.setdefault(pr_number, []).append(text)

    async def add_labels(self, pr_number: int, labels: List[str]) -> None:
        if self.fail_labels:
            raise GitHubAPIError("labels are broken", status_code=500)
        self.labels.setdefault(pr_number, set()).update(labels)

    async def remove_label(self, pr_number: int, label: str) -> None:
        if self.fail_labels:
            raise GitHubAPIError("labels are broken", status_code=500)
        self.labels.setdefault(pr_number, set()).discard(label)

    async def has_write_permission(self, username: str) -> bool:
        return username in self.writers

    async def get_branch_sha(self, branch: str) -> str:
        return self.branches[branch]

    async def set_branch_to_sha(self, branch: str, sha: str) -> None:
        self.branches[branch] = sha

    async def merge_branches(self, base: str, head_sha: str, message: str) -> str:
        if self.merge_conflict:
            raise MergeConflictError("conflict", status_code=409)
        self._merges += 1
        sha = f"merge-{self._merges}"
        self.branches[base] = sha
        return sha

    async def cancel_workflows(self, run_ids: List[int]) -> None:
        self.cancelled_runs.extend(run_ids)

    async def load_config_file(self) -> Optional[str]:
        return self.config_file


class FakeResolver(RepositoryResolver):
    def __init__(self, *states: RepositoryState):
        self.states = {state.repository: state for state in states}

    async def get_repository_state(self, repository, installation_id):
        return self.states.get(repository)


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'bors.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def db(engine):
    return DbClient(create_session_factory(engine))


@pytest.fixture
def gh():
    return FakeRepositoryClient()


@pytest.fixture
def repo_config():
    return RepositoryConfig(
        timeout=3600,
        labels={
            LabelTrigger.APPROVED: [LabelModification.parse("+approved")],
            LabelTrigger.UNAPPROVED: [LabelModification.parse("-approved")],
            LabelTrigger.TRY: [LabelModification.parse("+trying")],
            LabelTrigger.TRY_FAILED: [
                LabelModification.parse("-trying"),
                LabelModification.parse("+try-failed"),
            ],
        },
    )


@pytest.fixture
def repo(gh, repo_config):
    return RepositoryState(repository=REPO, client=gh, config=repo_config)


@pytest.fixture
def ctx(db, repo):
    return BorsContext(
        db=db,
        parser=CommandParser("@bors", bot_login=BOT_LOGIN),
        repositories=FakeResolver(repo),
    )


def comment(pr_number: int, text: str, author: GithubUser = ADMIN) -> CommentPosted:
    return CommentPosted(
        repository=REPO,
        installation_id=1,
        delivery_id=f"comment-{pr_number}",
        pr_number=pr_number,
        author=author,
        text=text,
    )


def edited(pr: PullRequest, from_base_sha: Optional[str] = None) -> PullRequestEdited:
    return PullRequestEdited(repository=REPO, pull_request=pr, from_base_sha=from_base_sha)


def pushed(pr: PullRequest) -> PullRequestPushed:
    return PullRequestPushed(repository=REPO, pull_request=pr)
