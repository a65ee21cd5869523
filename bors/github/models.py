"""
GitHub domain types shared by the webhook parser, the API client and the handlers.

These are plain Pydantic models, not database tables.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from bors.models.pull_request import MergeableState


class GithubRepoName(BaseModel):
    """Repository identity: owner/name pair, the root scoping key of all state."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @classmethod
    def parse(cls, full_name: str) -> "GithubRepoName":
        """
        Parse an `owner/name` string.

        Raises:
            ValueError: If the string is not of the form `owner/name`.
        """
        owner, sep, name = full_name.partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Invalid repository name: {full_name!r}")
        return cls(owner=owner, name=name)

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


class GithubUser(BaseModel):
    login: str
    id: Optional[int] = None


class Branch(BaseModel):
    """A named ref together with the commit it points to."""

    name: str
    sha: str


class PullRequest(BaseModel):
    """The subset of a GitHub pull request the bot works with."""

    number: int
    title: str = ""
    author: GithubUser
    head: Branch
    base: Branch
    mergeable_state: MergeableState = MergeableState.UNKNOWN
    labels: List[str] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> "PullRequest":
        """Build from the `pull_request` object of a webhook or REST response."""
        head = data.get("head") or {}
        base = data.get("base") or {}
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            author=GithubUser(
                login=(data.get("user") or {}).get("login", ""),
                id=(data.get("user") or {}).get("id"),
            ),
            head=Branch(name=head.get("ref", ""), sha=head.get("sha", "")),
            base=Branch(name=base.get("ref", ""), sha=base.get("sha", "")),
            mergeable_state=MergeableState.from_github(data.get("mergeable_state")),
            labels=[label["name"] for label in data.get("labels") or []],
        )
