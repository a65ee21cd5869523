"""
Runtime state shared by the event handlers.
"""

from dataclasses import dataclass
from typing import Optional

from bors.commands import CommandParser
from bors.config import RepositoryConfig
from bors.db.client import DbClient
from bors.github.client import RepositoryClient
from bors.github.models import GithubRepoName


@dataclass
class RepositoryState:
    """Everything the handlers need to act on one repository."""

    repository: GithubRepoName
    client: RepositoryClient
    config: RepositoryConfig


class RepositoryResolver:
    """
    Looks up (and lazily creates) the state of a repository.

    `installation_id` may be None for events that do not come from a webhook;
    implementations then have to find the installation themselves.
    """

    async def get_repository_state(
        self, repository: GithubRepoName, installation_id: Optional[int]
    ) -> Optional[RepositoryState]:
        raise NotImplementedError


@dataclass
class BorsContext:
    """Process-wide collaborators of the event handlers."""

    db: DbClient
    parser: CommandParser
    repositories: RepositoryResolver
