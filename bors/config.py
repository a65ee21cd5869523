"""
Repository configuration.

Each repository may carry a `bors.yaml` file at the root of its default branch:

    timeout: 7200
    labels:
      approved: ["+approved", "-waiting-on-review"]
      unapproved: ["-approved", "+waiting-on-review"]
      try_failed: ["+ci-failed"]
"""

from enum import Enum
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILE_PATH = "bors.yaml"
DEFAULT_BUILD_TIMEOUT = 3600


class LabelTrigger(str, Enum):
    """State transitions that can add or remove labels on a PR."""

    APPROVED = "approved"
    UNAPPROVED = "unapproved"
    TRY = "try"
    TRY_FAILED = "try_failed"


class LabelModification(BaseModel):
    """A single `+label` (add) or `-label` (remove) entry."""

    label: str
    add: bool

    @classmethod
    def parse(cls, value: str) -> "LabelModification":
        """
        Parse `+name` or `-name`.

        Raises:
            ValueError: If the entry has no sign or no label name.
        """
        value = value.strip()
        if len(value) < 2 or value[0] not in "+-":
            raise ValueError(
                f"Label modification {value!r} must look like '+label' or '-label'"
            )
        return cls(label=value[1:], add=value[0] == "+")


class RepositoryConfig(BaseModel):
    """Per-repository bot configuration."""

    timeout: int = Field(
        default=DEFAULT_BUILD_TIMEOUT,
        gt=0,
        description="Seconds after which a pending build is timed out",
    )
    labels: Dict[LabelTrigger, List[LabelModification]] = Field(default_factory=dict)

    @field_validator("labels", mode="before")
    @classmethod
    def _parse_labels(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {
            trigger: [
                LabelModification.parse(item) if isinstance(item, str) else item
                for item in (items or [])
            ]
            for trigger, items in value.items()
        }


def parse_repository_config(content: Optional[str]) -> RepositoryConfig:
    """
    Parse the YAML content of a repository config file.

    Args:
        content: File content, or None when the repository has no config file.

    Returns:
        The parsed configuration (defaults for missing or empty files).
    """
    if not content:
        return RepositoryConfig()
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid {CONFIG_FILE_PATH}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{CONFIG_FILE_PATH} must contain a mapping")
    return RepositoryConfig.model_validate(data)
