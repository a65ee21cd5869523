"""
Workflow Model and Enums

One CI run (GitHub Actions or an external CI) reporting into a build.
Key: (workflow_type, run_id)
"""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import BigInteger, Column, DateTime, String, UniqueConstraint

from bors.models.pull_request import utcnow

if TYPE_CHECKING:
    from bors.models.build import Build

_U64_LIMIT = 1 << 64
_I64_LIMIT = 1 << 63


def run_id_to_db(run_id: int) -> int:
    """
    Convert an unsigned 64-bit GitHub run id into the signed BIGINT stored in the DB.

    Values above the signed range wrap around (two's complement), so the mapping
    is a bijection between [0, 2**64) and [-2**63, 2**63).

    Raises:
        ValueError: If `run_id` does not fit into an unsigned 64-bit integer.
    """
    if not 0 <= run_id < _U64_LIMIT:
        raise ValueError(f"Run id {run_id} is not an unsigned 64-bit integer")
    return run_id - _U64_LIMIT if run_id >= _I64_LIMIT else run_id


def run_id_from_db(value: int) -> int:
    """Inverse of `run_id_to_db`."""
    if not -_I64_LIMIT <= value < _I64_LIMIT:
        raise ValueError(f"Stored run id {value} is not a signed 64-bit integer")
    return value + _U64_LIMIT if value < 0 else value


class WorkflowType(str, Enum):
    """Where a workflow run comes from."""

    GITHUB = "github"
    EXTERNAL = "external"


class WorkflowStatus(str, Enum):
    """Workflow status enum. SUCCESS and FAILURE are terminal."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def is_terminal(self) -> bool:
        return self is not WorkflowStatus.PENDING

    def can_transition_to(self, new: "WorkflowStatus") -> bool:
        """A workflow only moves once, from PENDING to SUCCESS or FAILURE."""
        return self is WorkflowStatus.PENDING and new.is_terminal


class Workflow(SQLModel, table=True):
    """
    Workflow table.
    """

    __tablename__ = "workflow"

    id: Optional[int] = Field(default=None, primary_key=True)
    build_id: int = Field(foreign_key="build.id", index=True)
    name: str = Field(description="Workflow display name")
    url: str = Field(description="Link to the workflow run")
    run_id: int = Field(
        sa_column=Column(BigInteger, nullable=False, index=True),
        description="Run id reinterpreted as signed 64-bit, see run_id_to_db",
    )
    workflow_type: str = Field(sa_column=Column(String, nullable=False))
    status: str = Field(
        default=WorkflowStatus.PENDING.value,
        sa_column=Column(
            String, nullable=False, default=WorkflowStatus.PENDING.value
        ),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=utcnow),
    )

    # Relationships
    build: "Build" = Relationship()

    __table_args__ = (
        UniqueConstraint("workflow_type", "run_id", name="uq_workflow_run"),
    )

    @property
    def github_run_id(self) -> int:
        return run_id_from_db(self.run_id)

    @property
    def workflow_status(self) -> WorkflowStatus:
        return WorkflowStatus(self.status)
