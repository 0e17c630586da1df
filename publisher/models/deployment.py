"""Deployment data models."""

import re
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

_DISALLOWED_NAME_CHARS = re.compile(r"[^a-z0-9-]")


def sanitize_repository_name(name: str) -> str:
    """Derive a URL-safe repository/project slug from a project name.

    Lower-cases the name and replaces every character outside ``[a-z0-9-]``
    with ``-``. Names that map to the same slug collide; collisions are left
    to the provider to reject.
    """
    return _DISALLOWED_NAME_CHARS.sub("-", name.lower())


class DeploymentStep(str, Enum):
    """Pipeline steps, declared in execution order."""

    VALIDATE = "validate"
    CREATE_REPOSITORY = "create_repository"
    PUSH_FILES = "push_files"
    CREATE_HOSTING_PROJECT = "create_hosting_project"
    LINK_REPOSITORY = "link_repository"
    TRIGGER_DEPLOYMENT = "trigger_deployment"
    MONITOR_DEPLOYMENT = "monitor_deployment"


class StepStatus(str, Enum):
    """Status of a single step record."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


def step_message(step: DeploymentStep, status: StepStatus) -> str:
    """Human-readable message for a step in a given status."""
    match (step, status):
        case (DeploymentStep.VALIDATE, StepStatus.IN_PROGRESS):
            return "Validating deployment configuration"
        case (DeploymentStep.VALIDATE, StepStatus.COMPLETED):
            return "Configuration validated successfully"
        case (DeploymentStep.VALIDATE, StepStatus.FAILED):
            return "Configuration validation failed"
        case (DeploymentStep.CREATE_REPOSITORY, StepStatus.IN_PROGRESS):
            return "Creating GitHub repository"
        case (DeploymentStep.CREATE_REPOSITORY, StepStatus.COMPLETED):
            return "GitHub repository created"
        case (DeploymentStep.CREATE_REPOSITORY, StepStatus.FAILED):
            return "Failed to create GitHub repository"
        case (DeploymentStep.PUSH_FILES, StepStatus.IN_PROGRESS):
            return "Pushing project files to GitHub"
        case (DeploymentStep.PUSH_FILES, StepStatus.COMPLETED):
            return "Project files pushed successfully"
        case (DeploymentStep.PUSH_FILES, StepStatus.FAILED):
            return "Failed to push project files"
        case (DeploymentStep.CREATE_HOSTING_PROJECT, StepStatus.IN_PROGRESS):
            return "Creating Vercel project"
        case (DeploymentStep.CREATE_HOSTING_PROJECT, StepStatus.COMPLETED):
            return "Vercel project created"
        case (DeploymentStep.CREATE_HOSTING_PROJECT, StepStatus.FAILED):
            return "Failed to create Vercel project"
        case (DeploymentStep.LINK_REPOSITORY, StepStatus.IN_PROGRESS):
            return "Connecting Vercel to GitHub repository"
        case (DeploymentStep.LINK_REPOSITORY, StepStatus.COMPLETED):
            return "Vercel connected to GitHub"
        case (DeploymentStep.LINK_REPOSITORY, StepStatus.FAILED):
            return "Failed to connect Vercel to GitHub"
        case (DeploymentStep.TRIGGER_DEPLOYMENT, StepStatus.IN_PROGRESS):
            return "Triggering Vercel deployment"
        case (DeploymentStep.TRIGGER_DEPLOYMENT, StepStatus.COMPLETED):
            return "Deployment triggered successfully"
        case (DeploymentStep.TRIGGER_DEPLOYMENT, StepStatus.FAILED):
            return "Failed to trigger deployment"
        case (DeploymentStep.MONITOR_DEPLOYMENT, StepStatus.IN_PROGRESS):
            return "Monitoring deployment status"
        case (DeploymentStep.MONITOR_DEPLOYMENT, StepStatus.COMPLETED):
            return "Deployment monitoring initialized"
        case (DeploymentStep.MONITOR_DEPLOYMENT, StepStatus.FAILED):
            return "Failed to monitor deployment"
    return f"{step.value} {status.value}"


class DeploymentRequest(BaseModel):
    """A request to publish a generated application.

    Fields carry no constraints: malformed requests are reported by the
    pipeline's validate step instead of being rejected at construction.
    """

    project_id: str
    project_name: str
    template_key: str
    files: dict[str, str]
    user_id: str

    is_private: bool = False
    organization_name: str | None = None
    repository_credential: str | None = None
    hosting_credential: str | None = None

    @property
    def repository_name(self) -> str:
        """Sanitized slug used for both the repository and hosting project."""
        return sanitize_repository_name(self.project_name)


class StepRecord(BaseModel):
    """Audit record of one executed pipeline step."""

    step: DeploymentStep
    status: StepStatus = StepStatus.IN_PROGRESS
    message: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None
    duration_ms: int | None = None
    error: str | None = None

    def finish(self, status: StepStatus, error: str | None = None) -> None:
        """Move the record from in_progress to a terminal status."""
        now = datetime.utcnow()
        self.status = status
        self.message = step_message(self.step, status)
        self.completed_at = now
        self.duration_ms = int((now - self.timestamp).total_seconds() * 1000)
        if status == StepStatus.FAILED:
            self.error = error


class DeploymentResult(BaseModel):
    """Outcome of one orchestration run, returned to the caller."""

    model_config = ConfigDict(frozen=True)

    success: bool
    repository_url: str | None = None
    repository_full_name: str | None = None
    hosting_project_id: str | None = None
    deployment_id: str | None = None
    deployment_url: str | None = None
    deployment_state: str | None = None

    error: str | None = None
    persisted: bool = False
    steps: list[StepRecord] = Field(default_factory=list)

    @property
    def failed_step(self) -> DeploymentStep | None:
        """The step that stopped the pipeline, if any."""
        if self.steps and self.steps[-1].status == StepStatus.FAILED:
            return self.steps[-1].step
        return None


class CredentialSelection(BaseModel):
    """Hosting credential chosen for one deployment request."""

    token: str = Field(repr=False)
    is_system_credential: bool
    remaining_system_deployments: int | None = None
    should_upgrade: bool = False


class CredentialInfo(BaseModel):
    """A user's hosting credential state and shared-credential usage."""

    has_personal_credential: bool
    deployment_count: int
    can_use_system_credential: bool
    system_credential_limit: int

    @computed_field
    @property
    def remaining_system_deployments(self) -> int:
        return max(self.system_credential_limit - self.deployment_count, 0)


class UpgradePrompt(BaseModel):
    """Recommendation to ask the user for their own hosting credential."""

    should_prompt: bool
    reason: Literal["limit_reached", "approaching_limit"] | None = None
    deployment_count: int | None = None
    limit: int | None = None
    remaining: int | None = None
