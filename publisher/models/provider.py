"""Identity models returned by repository and hosting providers."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class RepositorySpec(BaseModel):
    """Parameters for creating a remote repository."""

    name: str
    description: str = ""
    private: bool = False
    auto_init: bool = True


class RepositoryInfo(BaseModel):
    """Identity of a created repository."""

    owner: str
    name: str
    full_name: str
    url: str
    default_branch: str = "main"


class CommitInfo(BaseModel):
    """Result of committing a batch of files."""

    sha: str
    url: str | None = None
    file_count: int = 0


class HostingProjectInfo(BaseModel):
    """Identity of a hosting project."""

    project_id: str
    name: str
    linked_repository: str | None = None


class DeploymentInfo(BaseModel):
    """Identity and status of a hosting deployment."""

    deployment_id: str
    deployment_url: str | None = None
    state: str | None = None
    created_at: datetime | None = None
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)


class DeploymentLogEntry(BaseModel):
    """One build or runtime event of a hosting deployment."""

    type: str
    text: str | None = None
    created_at: datetime | None = None
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
