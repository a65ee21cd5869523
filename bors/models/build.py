"""
Build Model and Enums

One merge-relevant commit under CI (currently: try builds).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, String

from bors.models.pull_request import utcnow


class BuildStatus(str, Enum):
    """Build status enum. Everything except PENDING is terminal."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"  # Manually cancelled by a user
    TIMEOUTED = "timeouted"  # Ran for too long and was stopped by the bot

    @property
    def is_terminal(self) -> bool:
        return self is not BuildStatus.PENDING

    def can_transition_to(self, new: "BuildStatus") -> bool:
        """
        Check whether a build may move from this status to `new`.

        Only PENDING builds can change, and only into a terminal status.
        """
        return self is BuildStatus.PENDING and new.is_terminal


class Build(SQLModel, table=True):
    """
    Build table.

    Attached to at most one pull request through `pull_request.try_build_id`.
    """

    __tablename__ = "build"

    id: Optional[int] = Field(default=None, primary_key=True)
    repository: str = Field(index=True, description="Repository full name")
    branch: str = Field(description="Branch the build commit was pushed to")
    commit_sha: str = Field(index=True, description="SHA of the built commit")
    parent: str = Field(description="SHA of the commit the build was merged onto")
    status: str = Field(
        default=BuildStatus.PENDING.value,
        sa_column=Column(String, nullable=False, default=BuildStatus.PENDING.value),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=utcnow),
    )

    @property
    def build_status(self) -> BuildStatus:
        return BuildStatus(self.status)

    def age(self, now: Optional[datetime] = None) -> float:
        """Seconds elapsed since the build was created."""
        now = now or datetime.now(timezone.utc)
        created_at = self.created_at
        # SQLite hands back naive datetimes
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return (now - created_at).total_seconds()
