"""
Models package.

Import all models here so Alembic can discover them.
"""

from bors.models.pull_request import PullRequest, MergeableState
from bors.models.build import Build, BuildStatus
from bors.models.workflow import (
    Workflow,
    WorkflowStatus,
    WorkflowType,
    run_id_from_db,
    run_id_to_db,
)

__all__ = [
    "PullRequest",
    "MergeableState",
    "Build",
    "BuildStatus",
    "Workflow",
    "WorkflowStatus",
    "WorkflowType",
    "run_id_from_db",
    "run_id_to_db",
]
