"""
GitHub REST API client scoped to a single repository.

Handlers only talk to GitHub through `RepositoryClient`; the production
implementation uses httpx with an installation access token.
"""

import base64
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from bors.config import CONFIG_FILE_PATH
from bors.core.logging import get_logger
from bors.github.models import GithubRepoName, PullRequest

logger = get_logger(__name__)

WRITE_PERMISSIONS = ("admin", "maintain", "write")


class GitHubAPIError(Exception):
    """A request to the GitHub API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MergeConflictError(GitHubAPIError):
    """GitHub refused to create a merge commit because of conflicts."""


class RepositoryClient:
    """Operations the bot performs on one GitHub repository."""

    repository: GithubRepoName

    async def get_pull_request(self, pr_number: int) -> PullRequest:
        raise NotImplementedError

    async def post_comment(self, pr_number: int, text: str) -> None:
        raise NotImplementedError

    async def add_labels(self, pr_number: int, labels: List[str]) -> None:
        raise NotImplementedError

    async def remove_label(self, pr_number: int, label: str) -> None:
        raise NotImplementedError

    async def has_write_permission(self, username: str) -> bool:
        raise NotImplementedError

    async def get_branch_sha(self, branch: str) -> str:
        raise NotImplementedError

    async def set_branch_to_sha(self, branch: str, sha: str) -> None:
        raise NotImplementedError

    async def merge_branches(self, base: str, head_sha: str, message: str) -> str:
        raise NotImplementedError

    async def cancel_workflows(self, run_ids: List[int]) -> None:
        raise NotImplementedError

    async def load_config_file(self) -> Optional[str]:
        raise NotImplementedError


class GithubRepositoryClient(RepositoryClient):
    """RepositoryClient backed by the GitHub REST API."""

    def __init__(
        self,
        repository: GithubRepoName,
        token_provider: Callable[[], Awaitable[str]],
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ):
        """
        Initialize GitHub client.

        Args:
            repository: Repository every request is scoped to.
            token_provider: Coroutine function returning a valid access token.
            base_url: GitHub API root.
            timeout: Timeout in seconds applied to every request.
        """
        self.repository = repository
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def repo_url(self) -> str:
        return f"{self.base_url}/repos/{self.repository.owner}/{self.repository.name}"

    async def _request(
        self,
        method: str,
        url: str,
        allowed_statuses: tuple = (),
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            token = await self.token_provider()
        except httpx.HTTPError as e:
            raise GitHubAPIError(
                f"Cannot get an access token for {self.repository}: {e}"
            ) from e
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "bors",
            "Authorization": f"token {token}",
            **kwargs.pop("headers", {}),
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(method, url, headers=headers, **kwargs)
            except httpx.HTTPError as e:
                raise GitHubAPIError(f"{method} {url} failed: {e}") from e

        if response.status_code in allowed_statuses:
            return response
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(
                f"{method} {url} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            ) from e
        return response

    async def get_pull_request(self, pr_number: int) -> PullRequest:
        response = await self._request("GET", f"{self.repo_url}/pulls/{pr_number}")
        return PullRequest.from_payload(response.json())

    async def post_comment(self, pr_number: int, text: str) -> None:
        await self._request(
            "POST",
            f"{self.repo_url}/issues/{pr_number}/comments",
            json={"body": text},
        )
        logger.debug("Posted comment on %s#%d", self.repository, pr_number)

    async def add_labels(self, pr_number: int, labels: List[str]) -> None:
        await self._request(
            "POST",
            f"{self.repo_url}/issues/{pr_number}/labels",
            json={"labels": labels},
        )

    async def remove_label(self, pr_number: int, label: str) -> None:
        # 404: label was not present, which is the state we want anyway
        await self._request(
            "DELETE",
            f"{self.repo_url}/issues/{pr_number}/labels/{label}",
            allowed_statuses=(404,),
        )

    async def has_write_permission(self, username: str) -> bool:
        response = await self._request(
            "GET",
            f"{self.repo_url}/collaborators/{username}/permission",
            allowed_statuses=(404,),
        )
        if response.status_code == 404:
            return False
        return response.json().get("permission") in WRITE_PERMISSIONS

    async def get_branch_sha(self, branch: str) -> str:
        response = await self._request("GET", f"{self.repo_url}/branches/{branch}")
        return response.json()["commit"]["sha"]

    async def set_branch_to_sha(self, branch: str, sha: str) -> None:
        """Force-move `branch` to `sha`, creating the branch if it does not exist."""
        response = await self._request(
            "PATCH",
            f"{self.repo_url}/git/refs/heads/{branch}",
            json={"sha": sha, "force": True},
            allowed_statuses=(404, 422),
        )
        if response.status_code in (404, 422):
            await self._request(
                "POST",
                f"{self.repo_url}/git/refs",
                json={"ref": f"refs/heads/{branch}", "sha": sha},
            )

    async def merge_branches(self, base: str, head_sha: str, message: str) -> str:
        """
        Merge `head_sha` into branch `base`.

        Returns:
            SHA of the resulting merge commit (or of `base` when there was
            nothing to merge).

        Raises:
            MergeConflictError: If the merge has conflicts.
        """
        response = await self._request(
            "POST",
            f"{self.repo_url}/merges",
            json={"base": base, "head": head_sha, "commit_message": message},
            allowed_statuses=(204, 409),
        )
        if response.status_code == 409:
            raise MergeConflictError(
                f"Merging {head_sha} into {base} has conflicts", status_code=409
            )
        if response.status_code == 204:
            return await self.get_branch_sha(base)
        return response.json()["sha"]

    async def cancel_workflows(self, run_ids: List[int]) -> None:
        for run_id in run_ids:
            # 409: the run already finished
            await self._request(
                "POST",
                f"{self.repo_url}/actions/runs/{run_id}/cancel",
                allowed_statuses=(409,),
            )

    async def load_config_file(self) -> Optional[str]:
        response = await self._request(
            "GET",
            f"{self.repo_url}/contents/{CONFIG_FILE_PATH}",
            allowed_statuses=(404,),
        )
        if response.status_code == 404:
            return None
        data: Dict[str, Any] = response.json()
        return base64.b64decode(data.get("content", "")).decode("utf-8")
