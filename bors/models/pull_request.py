"""
Pull Request Model

Stores PR identity, review state and the currently attached try build.
Key: (repository, number)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint, Column, DateTime, String

if TYPE_CHECKING:
    from bors.models.build import Build


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MergeableState(str, Enum):
    """Whether GitHub considers the PR cleanly mergeable."""

    UNKNOWN = "unknown"
    MERGEABLE = "mergeable"
    HAS_CONFLICTS = "has_conflicts"

    @classmethod
    def from_github(cls, value: Optional[str]) -> "MergeableState":
        """Map GitHub's `mergeable_state` string onto the stored classification."""
        if value == "dirty":
            return cls.HAS_CONFLICTS
        if value is None or value == "unknown":
            return cls.UNKNOWN
        return cls.MERGEABLE


class PullRequest(SQLModel, table=True):
    """
    Pull Request table.

    A row is created lazily the first time the bot sees the PR and is never
    deleted. Composite unique key: (repository, number)
    """

    __tablename__ = "pull_request"

    id: Optional[int] = Field(default=None, primary_key=True)
    repository: str = Field(
        index=True, description="Repository full name, e.g., 'owner/repo'"
    )
    number: int = Field(index=True, description="GitHub PR number")
    base_branch: str = Field(default="", description="Branch the PR targets")
    mergeable_state: str = Field(
        default=MergeableState.UNKNOWN.value,
        sa_column=Column(
            String, nullable=False, default=MergeableState.UNKNOWN.value
        ),
    )
    approved_by: Optional[str] = Field(
        default=None, description="Login of the approver; NULL means unapproved"
    )
    try_build_id: Optional[int] = Field(
        default=None, foreign_key="build.id", index=True
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=utcnow),
    )

    # Relationships
    try_build: Optional["Build"] = Relationship()

    __table_args__ = (
        UniqueConstraint("repository", "number", name="uq_pull_request_identity"),
    )

    def is_approved(self) -> bool:
        return self.approved_by is not None
