"""
GitHub App state: App identity, installation tokens and per-repository state.
"""

from functools import partial
from typing import Dict, Optional

import httpx

from bors.config import RepositoryConfig, parse_repository_config
from bors.core.logging import get_logger
from bors.github.auth import InstallationTokenCache, app_headers
from bors.github.client import GitHubAPIError, GithubRepositoryClient
from bors.github.models import GithubRepoName
from bors.state import RepositoryResolver, RepositoryState

logger = get_logger(__name__)


class GithubAppState(RepositoryResolver):
    """Creates repository clients for every repository the App is installed on."""

    def __init__(
        self,
        app_id: int,
        private_key: str,
        slug: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ):
        self.app_id = app_id
        self.private_key = private_key
        self.slug = slug
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.tokens = InstallationTokenCache(app_id, private_key, api_url, timeout)
        self.repositories: Dict[GithubRepoName, RepositoryState] = {}

    @classmethod
    async def load(
        cls,
        app_id: int,
        private_key: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ) -> "GithubAppState":
        """
        Authenticate as the App and fetch its identity.

        Raises:
            GitHubAPIError: If the credentials are rejected or GitHub is unreachable.
        """
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.get(
                    f"{api_url.rstrip('/')}/app",
                    headers=app_headers(app_id, private_key),
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(
                f"Cannot authenticate as GitHub App {app_id}: {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"Cannot reach GitHub: {e}") from e

        slug = resp.json()["slug"]
        logger.info("Authenticated as GitHub App %s (%d)", slug, app_id)
        return cls(app_id, private_key, slug, api_url, timeout)

    @property
    def bot_login(self) -> str:
        return f"{self.slug}[bot]"

    async def get_repository_state(
        self, repository: GithubRepoName, installation_id: Optional[int]
    ) -> Optional[RepositoryState]:
        state = self.repositories.get(repository)
        if state is not None:
            return state

        if installation_id is None:
            installation_id = await self._find_installation(repository)
            if installation_id is None:
                logger.warning("App is not installed on %s", repository)
                return None

        client = GithubRepositoryClient(
            repository,
            token_provider=partial(self.tokens.get_token, installation_id),
            base_url=self.api_url,
            timeout=self.timeout,
        )
        state = RepositoryState(
            repository=repository,
            client=client,
            config=await self._load_config(client),
        )
        self.repositories[repository] = state
        logger.info("Loaded repository %s", repository)
        return state

    async def _find_installation(self, repository: GithubRepoName) -> Optional[int]:
        """
        Raises:
            GitHubAPIError: If GitHub cannot be reached or rejects the App.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    f"{self.api_url}/repos/{repository.owner}/{repository.name}/installation",
                    headers=app_headers(self.app_id, self.private_key),
                )
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(
                f"Cannot look up the installation of {repository}: {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"Cannot reach GitHub: {e}") from e
        return resp.json()["id"]

    async def _load_config(self, client: GithubRepositoryClient) -> RepositoryConfig:
        try:
            return parse_repository_config(await client.load_config_file())
        except (GitHubAPIError, ValueError) as e:
            logger.error(
                "Cannot load configuration of %s, using defaults: %s",
                client.repository,
                e,
            )
            return RepositoryConfig()
