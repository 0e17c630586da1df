"""Project-related data models."""

from datetime import datetime

from pydantic import BaseModel, Field

from publisher.models.provider import DeploymentInfo


class ProjectDeploymentFields(BaseModel):
    """Deployment outputs written to the project record after a run."""

    repository_url: str | None = None
    repository_created: bool = False
    hosting_project_id: str | None = None
    hosting_connected: bool = False
    deployment_url: str | None = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ProjectRecord(BaseModel):
    """Long-lived project record owned by the project store."""

    id: str
    user_id: str
    name: str

    repository_url: str | None = None
    repository_created: bool = False
    hosting_project_id: str | None = None
    hosting_connected: bool = False
    deployment_url: str | None = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def apply_deployment_fields(self, fields: ProjectDeploymentFields) -> None:
        """Copy a run's deployment outputs onto the record."""
        self.repository_url = fields.repository_url
        self.repository_created = fields.repository_created
        self.hosting_project_id = fields.hosting_project_id
        self.hosting_connected = fields.hosting_connected
        self.deployment_url = fields.deployment_url
        self.updated_at = fields.updated_at


class RepositoryStatus(BaseModel):
    url: str | None = None
    created: bool = False


class HostingStatus(BaseModel):
    project_id: str | None = None
    deployment_url: str | None = None
    connected: bool = False
    latest_deployment: DeploymentInfo | None = None


class DeploymentStatus(BaseModel):
    """Snapshot of a project's repository and hosting state."""

    project_id: str
    repository: RepositoryStatus
    hosting: HostingStatus

    @classmethod
    def from_project(
        cls,
        project: ProjectRecord,
        latest_deployment: DeploymentInfo | None = None,
    ) -> "DeploymentStatus":
        """Create a status snapshot from a project record."""
        return cls(
            project_id=project.id,
            repository=RepositoryStatus(
                url=project.repository_url,
                created=project.repository_created,
            ),
            hosting=HostingStatus(
                project_id=project.hosting_project_id,
                deployment_url=project.deployment_url,
                connected=project.hosting_connected,
                latest_deployment=latest_deployment,
            ),
        )
